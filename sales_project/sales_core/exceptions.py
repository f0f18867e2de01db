from django.core.exceptions import ValidationError


class ConsolidationError(ValidationError):
    """Raised when source documents cannot be merged into one target document."""
    pass


class LifecycleError(ValidationError):
    """Raised on an illegal status transition or an edit of a locked document."""
    pass


class PersistenceError(Exception):
    """Raised when the store fails inside a transaction (already rolled back)."""
    pass
