"""
Realtime change notifier.

In-process publish/subscribe hub for table change signals. Services queue a
signal on the session that performed the write; the signal is published
only after that session commits and is dropped if it rolls back. A signal
is a cue to re-fetch, never the authoritative row.
"""

import enum
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "pickup.pending_change_signals"


class ChangeEvent(str, enum.Enum):
    """Kinds of row change a subscriber can listen for."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_EVENTS: FrozenSet[ChangeEvent] = frozenset(ChangeEvent)


@dataclass(frozen=True)
class ChangeSignal:
    """A row changed. values holds the filterable columns of that row."""

    table: str
    event: ChangeEvent
    row_id: Any = None
    values: Mapping[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict:
        return {
            "type": "change",
            "table": self.table,
            "event": self.event.value,
            "row_id": self.row_id,
        }


Callback = Callable[[ChangeSignal], None]


class Subscription:
    """Handle returned by subscribe(). cancel() is idempotent."""

    def __init__(
        self,
        hub: "RealtimeHub",
        subscription_id: int,
        table: str,
        callback: Callback,
        filters: Mapping[str, Any],
        events: FrozenSet[ChangeEvent],
    ):
        self.id = subscription_id
        self.table = table
        self.filters = dict(filters)
        self.events = events
        self._callback = callback
        self._hub = hub
        self.active = True

    def matches(self, signal: ChangeSignal) -> bool:
        if signal.table != self.table or signal.event not in self.events:
            return False
        return all(signal.values.get(key) == value for key, value in self.filters.items())

    def deliver(self, signal: ChangeSignal) -> None:
        if self.active:
            self._callback(signal)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._hub._remove(self)


class RealtimeHub:
    """Routes change signals to matching subscriptions."""

    def __init__(self):
        # table name -> subscription id -> Subscription
        self._subscriptions: Dict[str, Dict[int, Subscription]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        callback: Callback,
        filters: Optional[Mapping[str, Any]] = None,
        events: Optional[Iterable[ChangeEvent]] = None,
    ) -> Subscription:
        """
        Register a callback for changes on a table.

        Args:
            table: Table name (e.g. "room_participants")
            callback: Called synchronously with each matching ChangeSignal
            filters: Column equality filters, e.g. {"room_id": 3}
            events: Event kinds to receive (default: all)

        Returns:
            Subscription handle; call cancel() to stop delivery
        """
        with self._lock:
            subscription = Subscription(
                self,
                next(self._ids),
                table,
                callback,
                filters or {},
                frozenset(events) if events else ALL_EVENTS,
            )
            self._subscriptions.setdefault(table, {})[subscription.id] = subscription
        logger.debug(f"Subscribed #{subscription.id} to {table} {subscription.filters}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.cancel()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            table_subs = self._subscriptions.get(subscription.table)
            if table_subs is None:
                return
            table_subs.pop(subscription.id, None)
            if not table_subs:
                del self._subscriptions[subscription.table]

    def publish(self, signal: ChangeSignal) -> int:
        """
        Deliver a signal to every matching subscription.

        Returns:
            Number of callbacks invoked
        """
        with self._lock:
            candidates = list(self._subscriptions.get(signal.table, {}).values())

        delivered = 0
        for subscription in candidates:
            # A callback may cancel other subscriptions; deliver() re-checks active
            if not subscription.matches(signal) or not subscription.active:
                continue
            try:
                subscription.deliver(signal)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Realtime callback #{subscription.id} for {signal.table} failed: {e}"
                )
        return delivered

    def subscription_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, {}))
            return sum(len(subs) for subs in self._subscriptions.values())


# Global hub instance
_realtime_hub: Optional[RealtimeHub] = None


def get_realtime_hub() -> RealtimeHub:
    """
    Get the global realtime hub instance.

    Returns:
        RealtimeHub instance
    """
    global _realtime_hub
    if _realtime_hub is None:
        _realtime_hub = RealtimeHub()
    return _realtime_hub


def subscribe_room_participants(room_id: int, callback: Callback) -> Subscription:
    """Participant list changes for one room (room detail screen)."""
    return get_realtime_hub().subscribe(
        "room_participants", callback, filters={"room_id": room_id}
    )


def subscribe_user_notifications(user_id: str, callback: Callback) -> Subscription:
    """New notifications for one user."""
    return get_realtime_hub().subscribe(
        "notifications", callback, filters={"user_id": user_id}, events=[ChangeEvent.INSERT]
    )


def queue_change(session, signal: ChangeSignal) -> None:
    """
    Attach a signal to the session's current transaction.

    Accepts an AsyncSession or a sync Session.
    """
    sync_session = getattr(session, "sync_session", session)
    sync_session.info.setdefault(_PENDING_KEY, []).append(signal)


@event.listens_for(Session, "after_commit")
def _publish_after_commit(session) -> None:
    signals = session.info.pop(_PENDING_KEY, None)
    if not signals:
        return
    hub = get_realtime_hub()
    for signal in signals:
        hub.publish(signal)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session) -> None:
    dropped = session.info.pop(_PENDING_KEY, None)
    if dropped:
        logger.debug(f"Dropped {len(dropped)} change signals after rollback")
