"""Persistence adapter selecting a document backend per call."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from favtree.config.exceptions import ConfigError
from favtree.config.models import FavtreeConfig
from favtree.store.errors import PersistenceError
from favtree.store.models import ForestDocument

from .backends import (
    DEFAULT_WORKSPACE_DIRNAME,
    GLOBAL_STATE_KEY,
    WORKSPACE_FILENAME,
    GlobalBackend,
    GlobalStateStore,
    StorageBackend,
    WorkspaceBackend,
)

LOGGER = logging.getLogger(__name__)


class PersistenceAdapter:
    """Load and save the forest document through the configured backend.

    The backend is chosen from ``storage.location`` each time ``load`` or
    ``save`` runs, so a configuration change takes effect mid-session.
    """

    def __init__(
        self,
        root: Path | None,
        settings: Callable[[], FavtreeConfig],
        *,
        workspace_dirname: str = DEFAULT_WORKSPACE_DIRNAME,
    ) -> None:
        """Initialize the adapter.

        Args:
            root: Project root used by the workspace backend, if any.
            settings: Callable returning the current configuration.
            workspace_dirname: Tooling directory name under the project root.
        """
        self._root = root
        self._settings = settings
        self._workspace_dirname = workspace_dirname

    @property
    def root(self) -> Path | None:
        """Return the project root this adapter stores workspace data under."""
        return self._root

    def backend(self) -> StorageBackend:
        """Return the backend selected by the current configuration."""
        storage = self._settings().storage
        if storage.location == "global":
            return GlobalBackend(GlobalStateStore(Path(storage.global_state_path)))
        return WorkspaceBackend(self._root, self._workspace_dirname)

    def load(self) -> ForestDocument:
        """Return the stored document, or an empty one when nothing is usable.

        An unusable configuration is logged and treated like missing data.
        """
        try:
            backend = self.backend()
        except ConfigError as exc:
            LOGGER.error("Cannot choose a favorites backend: %s", exc)
            return ForestDocument()
        document = backend.load()
        if document is None:
            LOGGER.debug("No stored favorites found; starting with an empty document.")
            return ForestDocument()
        return document

    def save(self, document: ForestDocument) -> None:
        """Write the whole document.

        Raises:
            PersistenceError: If the backend cannot be chosen or fails to write.
        """
        try:
            backend = self.backend()
        except ConfigError as exc:
            raise PersistenceError(f"Cannot choose a favorites backend: {exc}") from exc
        backend.save(document)


__all__ = [
    "PersistenceAdapter",
    "StorageBackend",
    "WorkspaceBackend",
    "GlobalBackend",
    "GlobalStateStore",
    "DEFAULT_WORKSPACE_DIRNAME",
    "WORKSPACE_FILENAME",
    "GLOBAL_STATE_KEY",
]
