"""
Custom exceptions for the swipe/match engine.

Only ``InvalidSwipe``, ``UnknownActor`` and ``PersistenceFailure`` ever reach
API callers; the other errors are handled inside the engine.
"""


class SwipeEngineError(Exception):
    """Base exception for swipe engine errors."""
    pass


class InvalidSwipe(SwipeEngineError):
    """Raised when a swipe is rejected (self-swipe, unknown listing, wrong listing kind)."""

    def __init__(self, message: str, reason: str = "invalid"):
        super().__init__(message)
        self.reason = reason


class UnknownActor(SwipeEngineError):
    """Raised when an operation references an actor the directory does not know."""
    pass


class UnknownListing(SwipeEngineError):
    """Raised when a report references a listing that does not exist."""
    pass


class PersistenceFailure(SwipeEngineError):
    """Raised when a store cannot read or write its records."""
    pass


class ConcurrentMatchConflict(SwipeEngineError):
    """Raised when a match insert lost a race but the winning row is not visible yet."""
    pass


class NotificationDeliveryFailure(SwipeEngineError):
    """Raised by notification channels when an event could not be delivered."""
    pass
