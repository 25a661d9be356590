"""Configuration errors."""

from favtree.store.errors import FavtreeError


class ConfigError(FavtreeError):
    """Raised when the configuration file or an override cannot be used."""
