# Core modules

from .config import Settings, get_settings
from .exceptions import CartError, InvalidCartInput, CartPersistenceError, SessionNotFound, SessionUserMismatch

__all__ = [
    "Settings",
    "get_settings",
    "CartError",
    "InvalidCartInput",
    "CartPersistenceError",
    "SessionNotFound",
    "SessionUserMismatch",
]
