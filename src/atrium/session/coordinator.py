"""Session coordination: session ids, recent-session tracking and memory sharing."""

import logging
import uuid
from dataclasses import dataclass

from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..logging import JSONLLogger, get_logger
from ..memory import MemoryStore

logger = logging.getLogger(__name__)

MAX_RECENT_SESSIONS = 10


def new_session_id() -> str:
    """Mint a fresh session identifier."""
    return f"session_{uuid.uuid4().hex[:16]}"


@dataclass
class SessionActivation:
    """What happened when a session was activated."""

    session_id: str
    is_new: bool
    shared_from: str | None = None
    shared_count: int = 0


class SessionCoordinator:
    """Tracks each user's recent sessions and propagates memory between them.

    The user -> recent-sessions map keeps the last ``max_recent`` sessions per
    user, most recent first. Memory is shared at most once per
    (prior session, new session) pair.
    """

    def __init__(
        self,
        store: MemoryStore,
        max_recent: int = MAX_RECENT_SESSIONS,
        jsonl_logger: JSONLLogger | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> None:
        self.store = store
        self.max_recent = max_recent
        self.jsonl_logger = jsonl_logger or get_logger()
        self.conv_logger = conversation_logger or get_conversation_logger()
        self._recent: dict[str, list[str]] = {}
        self._shared_pairs: set[tuple[str, str]] = set()

    def ensure_session(self, provided_id: str | None, user_id: str) -> str:
        """Return the provided session id if non-empty, else a new one."""
        if provided_id and provided_id.strip():
            return provided_id.strip()
        session_id = new_session_id()
        logger.debug(f"Minted session {session_id} for {user_id}")
        return session_id

    def recent_sessions(self, user_id: str) -> list[str]:
        """The user's recent sessions, most recent first."""
        return list(self._recent.get(user_id, []))

    def previous_session(self, user_id: str, session_id: str) -> str | None:
        """The user's most recently used session other than ``session_id``."""
        for candidate in self._recent.get(user_id, []):
            if candidate != session_id:
                return candidate
        return None

    def activate(
        self,
        user_id: str,
        session_id: str,
        cross_session: bool = False,
        source_interface: str = "main",
    ) -> SessionActivation:
        """Mark a session as in use, sharing prior memory into it if asked.

        Args:
            user_id: The session owner.
            session_id: The session being used now.
            cross_session: Copy memory from the user's previous session.
            source_interface: Interface the request came from.

        Returns:
            SessionActivation describing whether the session is new and what
            was shared into it.
        """
        recent = self._recent.get(user_id, [])
        is_new = session_id not in recent
        activation = SessionActivation(session_id=session_id, is_new=is_new)

        if cross_session:
            prior = self.previous_session(user_id, session_id)
            if prior is not None and (prior, session_id) not in self._shared_pairs:
                activation.shared_from = prior
                activation.shared_count = self.store.share_memory_across_sessions(
                    user_id, prior, session_id
                )
                self._shared_pairs.add((prior, session_id))
                self.jsonl_logger.log(
                    "session_share",
                    session_id=session_id,
                    user_id=user_id,
                    from_session=prior,
                    shared=activation.shared_count,
                )

        self._remember(user_id, session_id)

        if is_new:
            self.conv_logger.log_session_start(session_id, user_id, source_interface)

        return activation

    def _remember(self, user_id: str, session_id: str) -> None:
        """Move the session to the front of the user's recent list."""
        recent = [s for s in self._recent.get(user_id, []) if s != session_id]
        recent.insert(0, session_id)
        evicted = recent[self.max_recent:]
        self._recent[user_id] = recent[: self.max_recent]

        if evicted:
            gone = set(evicted)
            self._shared_pairs = {
                pair for pair in self._shared_pairs if pair[1] not in gone
            }

    def forget_user(self, user_id: str) -> None:
        """Drop the user's session history."""
        sessions = set(self._recent.pop(user_id, []))
        self._shared_pairs = {
            pair for pair in self._shared_pairs if pair[1] not in sessions
        }
