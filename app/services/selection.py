"""
services/selection.py
---------------------
The session's "selected client": a sticky context that narrows later views.

The cookie session carries only an opaque session id (minted at login).
The selected client id lives server-side in a SelectionStore keyed by that
id, so every request of a session, including one that started before a
concurrent clear, reads and writes the same record. The display snapshot is
rebuilt from the database whenever the selection is made or re-validated and
is never consulted for authorization decisions.

States:
  Unselected
  Selected(client_id, snapshot)

select / clear / revalidate for one session id run under that id's
asyncio.Lock, so a re-validation cannot resurrect a selection that a
concurrent request just cleared.
"""

import asyncio
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from weakref import WeakValueDictionary

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationDenied
from app.core.logging import get_logger
from app.core.security import new_session_id
from app.models.client import Client
from app.models.user import User
from app.services.authorization import SELECT_DENIED_MESSAGE, ClientPolicy

logger = get_logger(__name__)

SESSION_ID_KEY = "_sid"


class ClearReason(str, Enum):
    CLIENT_MISSING = "client no longer exists"
    ACCESS_REVOKED = "access revoked"


@dataclass(frozen=True)
class ClientSnapshot:
    id: str
    name: str
    industry: str
    active: bool

    @classmethod
    def from_client(cls, client: Client) -> "ClientSnapshot":
        return cls(
            id=client.id,
            name=client.name,
            industry=client.industry,
            active=client.active,
        )


@dataclass(frozen=True)
class Unselected:
    pass


@dataclass(frozen=True)
class Selected:
    client_id: str
    snapshot: ClientSnapshot | None = None


SelectionState = Unselected | Selected


class SelectionStore:
    """
    Selected client ids per session id, held in process memory.

    Entries idle for longer than `max_age` seconds (the session cookie
    lifetime) are dropped; a session that outlives its entry simply reads
    as unselected.
    """

    def __init__(
        self,
        max_age: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_age = max_age
        self._clock = clock
        self._selected: dict[str, tuple[str, float]] = {}
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._selected)

    def lock(self, sid: str) -> asyncio.Lock:
        lock = self._locks.get(sid)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[sid] = lock
        return lock

    def get(self, sid: str) -> str | None:
        entry = self._selected.get(sid)
        if entry is None:
            return None
        client_id, touched = entry
        now = self._clock()
        if now - touched > self.max_age:
            del self._selected[sid]
            return None
        self._selected[sid] = (client_id, now)
        return client_id

    def set(self, sid: str, client_id: str) -> None:
        self._prune()
        self._selected[sid] = (client_id, self._clock())

    def discard(self, sid: str | None) -> None:
        if sid is not None:
            self._selected.pop(sid, None)

    def _prune(self) -> None:
        cutoff = self._clock() - self.max_age
        for sid in [s for s, (_, touched) in self._selected.items() if touched < cutoff]:
            del self._selected[sid]


class ClientSelection:
    """Selection manager for a single request's session."""

    def __init__(
        self,
        session: MutableMapping[str, Any],
        db: AsyncSession,
        policy: ClientPolicy,
        store: SelectionStore,
    ) -> None:
        self.session = session
        self.db = db
        self.policy = policy
        self.store = store
        self._snapshot: ClientSnapshot | None = None

    @property
    def sid(self) -> str | None:
        return self.session.get(SESSION_ID_KEY)

    def _lock(self) -> asyncio.Lock:
        # A session without an id has nothing stored and nothing to share.
        return self.store.lock(self.sid) if self.sid is not None else asyncio.Lock()

    def _forget(self) -> None:
        self.store.discard(self.sid)
        self._snapshot = None

    def get(self) -> SelectionState:
        client_id = self.store.get(self.sid) if self.sid is not None else None
        if client_id is None:
            return Unselected()
        snapshot = self._snapshot if self._snapshot and self._snapshot.id == client_id else None
        return Selected(client_id, snapshot)

    async def select(self, user: User, client: Client) -> Selected:
        """
        Make `client` the session's selection.
        Raises AuthorizationDenied, leaving the previous selection untouched,
        when the user may not select it.
        """
        if self.sid is None:
            self.session[SESSION_ID_KEY] = new_session_id()

        async with self._lock():
            decision = await self.policy.can_select(user, client)
            if not decision:
                logger.warning(
                    "Client selection denied",
                    user_id=user.id,
                    client_id=client.id,
                )
                raise AuthorizationDenied(decision.reason or SELECT_DENIED_MESSAGE)

            self.store.set(self.sid, client.id)
            self._snapshot = ClientSnapshot.from_client(client)

        logger.info("Client selected", user_id=user.id, client_id=client.id)
        return Selected(client.id, self._snapshot)

    async def clear(self) -> Unselected:
        async with self._lock():
            self._forget()
        return Unselected()

    async def revalidate(self, user: User) -> ClearReason | None:
        """
        Re-check a stored selection against the current database state.
        Clears it and returns the reason when the client is gone or the user
        lost access; returns None (no change) otherwise.
        """
        async with self._lock():
            state = self.get()
            if not isinstance(state, Selected):
                return None

            client_id = state.client_id
            client = await self.db.get(Client, client_id)
            if client is None:
                reason = ClearReason.CLIENT_MISSING
            elif not await self.policy.can_select(user, client):
                reason = ClearReason.ACCESS_REVOKED
            else:
                self._snapshot = ClientSnapshot.from_client(client)
                return None

            self._forget()

        logger.warning(
            "Selected client cleared",
            user_id=user.id,
            client_id=client_id,
            reason=reason.value,
        )
        return reason

    async def current_client(self) -> Client | None:
        """Load the selected client, or None when nothing is selected."""
        state = self.get()
        if not isinstance(state, Selected):
            return None
        client = await self.db.get(Client, state.client_id)
        if client is not None:
            self._snapshot = ClientSnapshot.from_client(client)
        return client
