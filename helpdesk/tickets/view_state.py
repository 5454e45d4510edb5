"""
Ticket View State - in-memory projections of the tickets table.

Two projections exist:

- TicketListProjection: the current user's tickets, newest first.
- TicketBoardProjection: every ticket, partitioned into one bucket per status
  for the kanban board.

Each projection owns its own copies of the ticket records. They are kept
live by two kinds of writes:

- remote change events pushed by the ChangeFeed (``apply_remote_event``);
- optimistic local mutations made before the backend confirms
  (``apply_local_mutation`` / ``rollback``).

Both kinds go through the same version rule: a write carrying an
``updated_at`` older than the entry already held is discarded, so local and
remote writes converge no matter which arrives first.

All methods except ``load``/``mount``/``unmount`` are synchronous. Event
application never suspends, so between two awaits a projection is always in
a consistent state: every ticket id sits in at most one position.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from helpdesk.database.change_feed import ChangeEvent, ChangeKind
from helpdesk.models.ticket import Ticket, TicketStatus
from helpdesk.tickets.errors import AuthenticationRequired, RepositoryError

logger = logging.getLogger(__name__)


@dataclass
class PendingMutation:
    """What a projection needs to undo one optimistic write."""
    ticket_id: str
    previous: Ticket
    index: int
    stamp: Optional[datetime]


def is_stale(incoming: Ticket, current: Ticket) -> bool:
    """True when ``incoming`` is older than the version already held."""
    if incoming.updated_at is None or current.updated_at is None:
        return False
    if not isinstance(incoming.updated_at, datetime) or not isinstance(current.updated_at, datetime):
        return False
    try:
        return incoming.updated_at < current.updated_at
    except TypeError:
        # naive vs aware timestamps cannot be ordered; accept the write
        return False


class TicketProjection:
    """
    Shared machinery for a materialized view over the tickets table.

    Subclasses decide scope (which tickets belong) and shape (where a ticket
    goes) by implementing the placement hooks at the bottom of the class.
    """

    TABLE = "tickets"

    def __init__(self, repository):
        self.repository = repository
        self.loading = False
        self.error: Optional[str] = None
        self.failure: Optional[RepositoryError] = None
        self._subscription = None
        self._buffered: List[ChangeEvent] = []
        self._generation = 0

    # =========================================================================
    # Loading and lifecycle
    # =========================================================================

    async def load(self) -> bool:
        """
        Replace the projection wholesale with a fresh fetch.

        Failures are not raised: they are logged and exposed through
        ``error``/``failure`` until the next successful load. Returns True on
        success.

        Loads may overlap. Only the most recently started one replaces the
        state, clears ``loading`` and replays the buffered events; an older
        load that finishes first leaves everything untouched.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        self.failure = None

        tickets: List[Ticket] = []
        failure: Optional[RepositoryError] = None
        try:
            tickets = await self._fetch()
        except RepositoryError as e:
            failure = e
        finally:
            superseded = generation != self._generation
            if not superseded:
                self.loading = False

        if superseded:
            logger.debug(f"{self.__class__.__name__} load superseded by a newer load")
            return failure is None

        if failure is not None:
            logger.error(f"{self.__class__.__name__} load failed: {failure}")
            self.error = failure.message
            self.failure = failure
        else:
            self._replace(tickets)
            logger.debug(f"{self.__class__.__name__} loaded {len(tickets)} tickets")

        # Events that arrived while any fetch was in flight
        buffered, self._buffered = self._buffered, []
        for event in buffered:
            self.apply_remote_event(event)

        return self.failure is None

    async def refresh(self) -> bool:
        """Manual retry after a failed load."""
        return await self.load()

    async def mount(self, feed) -> bool:
        """Subscribe to the change feed, then load."""
        if self._subscription is None:
            self._subscription = await feed.subscribe(self.TABLE, self.apply_remote_event)
        return await self.load()

    async def unmount(self) -> None:
        """Tear down the subscription; no event is applied afterwards."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.unsubscribe()

    @property
    def is_mounted(self) -> bool:
        return self._subscription is not None

    # =========================================================================
    # Remote events
    # =========================================================================

    def apply_remote_event(self, event: ChangeEvent) -> None:
        if self.loading:
            self._buffered.append(event)
            return

        if event.kind == ChangeKind.DELETE:
            ticket_id = event.record_id
            if ticket_id is not None:
                self._discard(ticket_id)
            return

        try:
            ticket = Ticket.from_dict(event.record)
        except ValueError as e:
            logger.warning(f"Ignoring {event.kind.value} event with bad record: {e}")
            return
        if ticket is None or ticket.id is None:
            return

        self._upsert(ticket, remote_insert=event.kind == ChangeKind.INSERT)

    def _upsert(self, ticket: Ticket, remote_insert: bool = False) -> None:
        located = self._locate(ticket.id)

        if not self._in_scope(ticket):
            # the ticket left this projection's scope
            if located is not None:
                self._remove_at(located)
            return

        if located is None:
            # inserts land at the head; an update for an unseen ticket lands where a move would
            self._place_new(ticket, at_head=remote_insert)
            return

        current = self._entry_at(located)
        if is_stale(ticket, current):
            logger.debug(f"Discarding stale write for ticket {ticket.id}")
            return

        if remote_insert:
            logger.debug(f"Duplicate insert for ticket {ticket.id}, applying as update")
        self._replace_at(located, ticket)

    def _discard(self, ticket_id: str) -> None:
        located = self._locate(ticket_id)
        if located is not None:
            self._remove_at(located)

    # =========================================================================
    # Local optimistic writes
    # =========================================================================

    def apply_local_mutation(self, ticket_id: str, patch: Dict[str, Any]) -> Optional[PendingMutation]:
        """
        Rewrite the held entry for ``ticket_id`` with ``patch`` right away.

        Returns what ``rollback`` needs, or None when this projection does not
        hold the ticket.
        """
        located = self._locate(ticket_id)
        if located is None:
            return None

        current = self._entry_at(located)
        patched = current.with_patch(patch)
        if is_stale(patched, current):
            logger.debug(f"Local write for ticket {ticket_id} is older than held entry, skipped")
            return None

        pending = PendingMutation(
            ticket_id=ticket_id,
            previous=current.copy(),
            index=self._index_of(located),
            stamp=patched.updated_at,
        )
        self._replace_at(located, patched)
        return pending

    def rollback(self, pending: PendingMutation) -> bool:
        """
        Undo an optimistic write that failed to persist.

        Only rolls back when the entry still carries the optimistic stamp;
        if a newer write landed meanwhile, that write wins.
        """
        located = self._locate(pending.ticket_id)
        if located is None:
            return False

        current = self._entry_at(located)
        if current.updated_at != pending.stamp:
            logger.debug(f"Ticket {pending.ticket_id} changed since optimistic write, not rolling back")
            return False

        self._remove_at(located)
        self._restore(pending.previous, pending.index)
        return True

    def add_local(self, ticket: Ticket) -> None:
        """Place a ticket the user just created."""
        if self._in_scope(ticket):
            self._upsert(ticket.copy(), remote_insert=True)

    # =========================================================================
    # Presentation contract
    # =========================================================================

    def get(self, ticket_id: str) -> Optional[Ticket]:
        located = self._locate(ticket_id)
        return self._entry_at(located).copy() if located is not None else None

    def __contains__(self, ticket_id: str) -> bool:
        return self._locate(ticket_id) is not None

    # =========================================================================
    # Placement hooks
    # =========================================================================

    async def _fetch(self) -> List[Ticket]:
        raise NotImplementedError

    def _in_scope(self, ticket: Ticket) -> bool:
        raise NotImplementedError

    def _replace(self, tickets: List[Ticket]) -> None:
        raise NotImplementedError

    def _locate(self, ticket_id: str):
        raise NotImplementedError

    def _entry_at(self, located) -> Ticket:
        raise NotImplementedError

    def _index_of(self, located) -> int:
        raise NotImplementedError

    def _remove_at(self, located) -> None:
        raise NotImplementedError

    def _replace_at(self, located, ticket: Ticket) -> None:
        raise NotImplementedError

    def _place_new(self, ticket: Ticket, at_head: bool = True) -> None:
        raise NotImplementedError

    def _restore(self, ticket: Ticket, index: int) -> None:
        raise NotImplementedError


class TicketListProjection(TicketProjection):
    """
    Flat list of the current user's tickets.

    Newest first at load time. New tickets go to the head; updates keep their
    position. The list is never re-sorted between loads.
    """

    def __init__(self, repository, owner_id: Optional[str] = None):
        super().__init__(repository)
        self.owner_id = owner_id
        self.tickets: List[Ticket] = []

    async def _fetch(self) -> List[Ticket]:
        user = await self.repository.get_current_user()
        if user is None:
            raise AuthenticationRequired()
        self.owner_id = user.id
        return await self.repository.list_tickets(owner_id=user.id)

    def _in_scope(self, ticket: Ticket) -> bool:
        return self.owner_id is not None and ticket.user_id == self.owner_id

    def _replace(self, tickets: List[Ticket]) -> None:
        self.tickets = [t.copy() for t in tickets if self._in_scope(t)]

    def _locate(self, ticket_id: str) -> Optional[int]:
        for index, ticket in enumerate(self.tickets):
            if ticket.id == ticket_id:
                return index
        return None

    def _entry_at(self, located: int) -> Ticket:
        return self.tickets[located]

    def _index_of(self, located: int) -> int:
        return located

    def _remove_at(self, located: int) -> None:
        del self.tickets[located]

    def _replace_at(self, located: int, ticket: Ticket) -> None:
        self.tickets[located] = ticket

    def _place_new(self, ticket: Ticket, at_head: bool = True) -> None:
        self.tickets.insert(0, ticket)

    def _restore(self, ticket: Ticket, index: int) -> None:
        self.tickets.insert(min(index, len(self.tickets)), ticket)

    def snapshot(self) -> List[Ticket]:
        return [t.copy() for t in self.tickets]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tickets": [t.to_dict() for t in self.tickets],
            "loading": self.loading,
            "error": self.error,
        }


class TicketBoardProjection(TicketProjection):
    """
    Every ticket, grouped into one bucket per status.

    A ticket whose status changes is moved to the end of its new bucket.
    Inserts go to the head of their bucket.
    """

    def __init__(self, repository):
        super().__init__(repository)
        self.buckets: Dict[TicketStatus, List[Ticket]] = {status: [] for status in TicketStatus}

    async def _fetch(self) -> List[Ticket]:
        return await self.repository.list_tickets()

    def _in_scope(self, ticket: Ticket) -> bool:
        return True

    def _replace(self, tickets: List[Ticket]) -> None:
        buckets = {status: [] for status in TicketStatus}
        seen = set()
        for ticket in tickets:
            if ticket.id in seen:
                continue
            seen.add(ticket.id)
            buckets[ticket.status].append(ticket.copy())
        self.buckets = buckets

    def _locate(self, ticket_id: str) -> Optional[Tuple[TicketStatus, int]]:
        for status, bucket in self.buckets.items():
            for index, ticket in enumerate(bucket):
                if ticket.id == ticket_id:
                    return status, index
        return None

    def _entry_at(self, located: Tuple[TicketStatus, int]) -> Ticket:
        status, index = located
        return self.buckets[status][index]

    def _index_of(self, located: Tuple[TicketStatus, int]) -> int:
        return located[1]

    def _remove_at(self, located: Tuple[TicketStatus, int]) -> None:
        status, index = located
        del self.buckets[status][index]

    def _replace_at(self, located: Tuple[TicketStatus, int], ticket: Ticket) -> None:
        status, index = located
        if ticket.status == status:
            self.buckets[status][index] = ticket
            return
        del self.buckets[status][index]
        self.buckets[ticket.status].append(ticket)

    def _place_new(self, ticket: Ticket, at_head: bool = True) -> None:
        if at_head:
            self.buckets[ticket.status].insert(0, ticket)
        else:
            self.buckets[ticket.status].append(ticket)

    def _restore(self, ticket: Ticket, index: int) -> None:
        bucket = self.buckets[ticket.status]
        bucket.insert(min(index, len(bucket)), ticket)

    def column(self, status: TicketStatus) -> List[Ticket]:
        return [t.copy() for t in self.buckets[TicketStatus(status)]]

    def counts(self) -> Dict[str, int]:
        return {status.value: len(bucket) for status, bucket in self.buckets.items()}

    def snapshot(self) -> Dict[TicketStatus, List[Ticket]]:
        return {status: [t.copy() for t in bucket] for status, bucket in self.buckets.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": {
                status.value: [t.to_dict() for t in bucket]
                for status, bucket in self.buckets.items()
            },
            "counts": self.counts(),
            "loading": self.loading,
            "error": self.error,
        }
