"""
Constants used across the room lifecycle services.
"""

import os

# Skill levels are integers on a 0..10 scale (inclusive)
SKILL_LEVEL_MIN = 0
SKILL_LEVEL_MAX = 10

MIN_ROOM_CAPACITY = 2  # Host plus at least one participant
NICKNAME_MAX_LENGTH = 20

RECRUITING_FEED_LIMIT = 10
NOTIFICATION_PAGE_LIMIT = 50

# Upper bound for a single core service call, in seconds
OPERATION_TIMEOUT_SECONDS = float(os.getenv("OPERATION_TIMEOUT_SECONDS", "10"))
