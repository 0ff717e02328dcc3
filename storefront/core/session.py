"""Cart session management"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..database.carts import CartStore
from ..database.storage import CartStorage, JsonFileCartStorage, MemoryCartStorage
from ..services.notifications import QueueNotifier
from ..services.supabase_storage import SupabaseCartStorage, SupabaseClient
from .config import Settings
from .exceptions import SessionNotFound, SessionUserMismatch

logger = logging.getLogger(__name__)

SAFE_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"
_SAFE_ID = re.compile(SAFE_ID_PATTERN)


@dataclass
class CartSession:
    """One shopper's cart and the toasts waiting for them"""
    session_id: str
    store: CartStore
    notifier: QueueNotifier
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def last_active(self) -> datetime:
        return max(self.created_at, self.store.updated_at)


class CartSessionManager:
    """
    Owns the lifecycle of cart stores.

    A store is created when a session opens and torn down when it ends.
    Signed-in shoppers get a backend-synced cart when the backend is
    configured; guests get a file-backed cart, or an in-memory one when no
    storage directory is configured.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.sessions: dict[str, CartSession] = {}
        self._supabase: Optional[SupabaseClient] = None
        if settings.supabase_configured:
            self._supabase = SupabaseClient(
                settings.supabase_url,
                settings.supabase_anon_key,
                timeout=settings.supabase_timeout,
            )

    async def open_session(
        self,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> CartSession:
        """
        Resume an open session, or create one and hydrate its cart.

        Raises:
            SessionUserMismatch: The session is open for a different user
        """
        if session_id and session_id in self.sessions:
            return self._resume(session_id, user_id)

        session_id = session_id or str(uuid.uuid4())
        notifier = QueueNotifier()
        store = CartStore(
            storage=self._storage_for(session_id, user_id),
            notifier=notifier,
            strict=self.settings.debug,
            fallback=self._fallback_for(session_id, user_id),
        )
        await store.load()

        # Another request may have opened the same session while this one loaded
        if session_id in self.sessions:
            logger.debug(f"Cart session {session_id} opened concurrently; reusing it")
            return self._resume(session_id, user_id)

        session = CartSession(
            session_id=session_id,
            store=store,
            notifier=notifier,
            user_id=user_id,
        )
        self.sessions[session_id] = session
        logger.info(f"Opened cart session {session_id} ({'user ' + user_id if user_id else 'guest'})")
        return session

    def _resume(self, session_id: str, user_id: Optional[str]) -> CartSession:
        session = self.sessions[session_id]
        if user_id and user_id != session.user_id:
            logger.warning(
                f"Refused to resume cart session {session_id} for user {user_id}; "
                f"it is open for {session.user_id or 'a guest'}"
            )
            raise SessionUserMismatch(session_id, user_id)
        return session

    def get_session(self, session_id: str) -> CartSession:
        """Get session by ID"""
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def end_session(self, session_id: str) -> bool:
        """
        Tear down a session, e.g. on logout.

        The stored cart is cleared only when clear_cart_on_logout is set.
        """
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False

        if self.settings.clear_cart_on_logout:
            await session.store.clear_cart()
            logger.info(f"Cleared cart for ended session {session_id}")
        logger.info(f"Ended cart session {session_id}")
        return True

    def cleanup_idle_sessions(self, max_age_hours: Optional[int] = None) -> int:
        """Drop sessions idle longer than max_age_hours; their carts stay stored"""
        if max_age_hours is None:
            max_age_hours = self.settings.session_max_age_hours
        now = datetime.now(timezone.utc)
        idle = [
            sid for sid, session in self.sessions.items()
            if (now - session.last_active).total_seconds() > max_age_hours * 3600
        ]
        for sid in idle:
            del self.sessions[sid]
        if idle:
            logger.info(f"Dropped {len(idle)} idle cart sessions")
        return len(idle)

    async def close(self) -> None:
        self.sessions.clear()
        if self._supabase:
            await self._supabase.close()

    def _storage_for(self, session_id: str, user_id: Optional[str]) -> CartStorage:
        for value in (session_id, user_id):
            if value is not None and not _SAFE_ID.fullmatch(value):
                raise ValueError(f"Unsafe identifier for cart storage: {value!r}")
        if user_id and self._supabase:
            return SupabaseCartStorage(self._supabase, user_id)
        if self.settings.cart_storage_dir:
            owner = f"user-{user_id}" if user_id else f"guest-{session_id}"
            return JsonFileCartStorage(Path(self.settings.cart_storage_dir) / f"{owner}.json")
        return MemoryCartStorage()

    def _fallback_for(self, session_id: str, user_id: Optional[str]) -> Optional[CartStorage]:
        """The session's local guest cart, read when the backend cart cannot be"""
        if user_id and self._supabase and self.settings.cart_storage_dir:
            return JsonFileCartStorage(
                Path(self.settings.cart_storage_dir) / f"guest-{session_id}.json"
            )
        return None
