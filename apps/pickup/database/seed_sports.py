"""
Seed the sports catalog from CSV on startup.

Idempotent: creates sports that are missing by name. Existing rows are left
untouched so catalog edits made by administrators survive restarts.
"""

import csv
import logging
from pathlib import Path

from sqlalchemy import select

from pickup.database import db
from pickup.database.models import Sport

logger = logging.getLogger(__name__)

SEED_DIR = Path(__file__).resolve().parent.parent / "seed"


def _bool(val: str) -> bool:
    return (val or "").strip().lower() == "true"


async def seed_sports_from_csv(session, csv_filename: str = "sports.csv") -> int:
    """Insert catalog rows missing from the sports table. Returns count of new rows."""
    csv_path = SEED_DIR / csv_filename
    if not csv_path.exists():
        logger.warning("Sports CSV not found: %s", csv_path)
        return 0

    result = await session.execute(select(Sport.name))
    existing = set(result.scalars().all())

    created = 0
    with open(csv_path, "r", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            if row["name"] in existing:
                continue
            session.add(
                Sport(
                    name=row["name"],
                    icon=row["icon"],
                    min_players=int(row["min_players"]),
                    max_players=int(row["max_players"]),
                    is_active=_bool(row["is_active"]),
                )
            )
            existing.add(row["name"])
            created += 1

    await session.flush()
    return created


async def seed_sports():
    """Seed the default sports catalog. Called during app startup."""
    async with db.AsyncSessionLocal() as session:
        created = await seed_sports_from_csv(session)
        if created:
            logger.info("Seeded %d new sports", created)
        await session.commit()
