"""
Exception classes for the storefront cart.
"""


class CartError(Exception):
    """
    Base exception for all cart errors.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (keys, session ids, etc.)
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ', '.join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class InvalidCartInput(CartError):
    """Raised when an add-to-cart request is malformed."""

    def __init__(self, reason: str, product_id: str | None = None):
        super().__init__(
            f"Invalid cart input: {reason}",
            details={'product_id': product_id, 'reason': reason}
        )
        self.product_id = product_id
        self.reason = reason


class CartPersistenceError(CartError):
    """Raised by a storage backend when a cart cannot be loaded or saved."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Cart {operation} failed: {reason}",
            details={'operation': operation, 'reason': reason}
        )
        self.operation = operation
        self.reason = reason


class SessionNotFound(CartError):
    """Raised when a cart session does not exist."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Cart session {session_id} not found",
            details={'session_id': session_id}
        )
        self.session_id = session_id


class SessionUserMismatch(CartError):
    """Raised when an open session is resumed for a different user."""

    def __init__(self, session_id: str, user_id: str | None):
        super().__init__(
            f"Cart session {session_id} belongs to another user",
            details={'session_id': session_id, 'user_id': user_id}
        )
        self.session_id = session_id
        self.user_id = user_id
