"""
Change Feed - row-level push notifications from Supabase Realtime.

Each ``subscribe`` call opens its own channel. Payloads are normalized into
ChangeEvent before they reach the handler, and a subscription that has been
torn down drops anything still in flight.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from helpdesk.database.supabase_client import AsyncSupabaseClientSingleton

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    kind: ChangeKind
    record: Dict[str, Any] = field(default_factory=dict)
    old_record: Dict[str, Any] = field(default_factory=dict)
    table: Optional[str] = None

    @property
    def record_id(self) -> Optional[str]:
        source = self.old_record if self.kind == ChangeKind.DELETE else self.record
        record_id = (source or {}).get("id") or (self.record or {}).get("id")
        return str(record_id) if record_id is not None else None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChangeEvent":
        """
        Normalize a realtime payload.

        Accepts the realtime-py shape ({"data": {"type", "record", "old_record"}})
        as well as the flat shape ({"eventType", "new", "old"}).
        Raises ValueError for anything else.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected change payload: {payload!r}")

        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        kind = data.get("type") or data.get("eventType")
        if not kind:
            raise ValueError(f"Change payload without event type: {payload!r}")

        return cls(
            kind=ChangeKind(str(kind).upper()),
            record=data.get("record") or data.get("new") or {},
            old_record=data.get("old_record") or data.get("old") or {},
            table=data.get("table"),
        )


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, on_event: Callable[[ChangeEvent], None]):
        self.feed = feed
        self.table = table
        self.on_event = on_event
        self.channel = None
        self.active = False

    def dispatch(self, payload: Dict[str, Any]) -> None:
        if not self.active:
            logger.debug(f"Dropping {self.table} change after unsubscribe")
            return

        try:
            event = ChangeEvent.from_payload(payload)
        except ValueError as e:
            logger.warning(f"Ignoring malformed {self.table} change: {e}")
            return

        self.on_event(event)

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self.feed.remove(self)


class ChangeFeed:
    def __init__(self, async_client=None, schema: str = "public"):
        self.client = async_client
        self.schema = schema

    async def _client(self):
        if self.client is None:
            self.client = await AsyncSupabaseClientSingleton.get_instance()
        return self.client

    async def subscribe(self, table: str, on_event: Callable[[ChangeEvent], None]) -> Subscription:
        """Listen for inserts, updates and deletes on ``table``."""
        client = await self._client()
        subscription = Subscription(self, table, on_event)

        channel = client.channel(f"{table}-{uuid.uuid4().hex[:8]}")
        channel.on_postgres_changes(
            "*", schema=self.schema, table=table, callback=subscription.dispatch
        )
        subscription.channel = channel
        subscription.active = True
        await channel.subscribe()

        logger.info(f"Subscribed to {self.schema}.{table} changes")
        return subscription

    async def remove(self, subscription: Subscription) -> None:
        client = await self._client()
        try:
            await client.remove_channel(subscription.channel)
        except Exception as e:
            logger.error(f"Error removing {subscription.table} channel: {e}")
        else:
            logger.info(f"Unsubscribed from {self.schema}.{subscription.table} changes")
