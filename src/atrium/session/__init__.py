"""Session identity and cross-session memory propagation."""

from .coordinator import SessionActivation, SessionCoordinator, new_session_id

__all__ = ["SessionActivation", "SessionCoordinator", "new_session_id"]
