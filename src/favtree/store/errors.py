"""Group store errors."""


class FavtreeError(Exception):
    """Base exception for group store operations."""


class ValidationError(FavtreeError):
    """Raised when a name, index, or field value is not acceptable."""


class NotFoundError(FavtreeError):
    """Raised when an identifier does not resolve to a group or item."""


class DuplicateError(FavtreeError):
    """Raised when a path or name already exists where it must be unique."""


class FormatError(FavtreeError):
    """Raised when an imported document is malformed."""


class PersistenceError(FavtreeError):
    """Raised when a storage backend fails to write the document."""


class CommandCancelled(FavtreeError):
    """Raised when the user dismisses a prompt mid-command."""
