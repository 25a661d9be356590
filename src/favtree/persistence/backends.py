"""Storage backends for the forest document."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from favtree.store.errors import PersistenceError
from favtree.store.models import ForestDocument

LOGGER = logging.getLogger(__name__)

DEFAULT_WORKSPACE_DIRNAME = ".favtree"
WORKSPACE_FILENAME = "project-favorites.json"
GLOBAL_STATE_KEY = "favtree.data"
DEFAULT_GLOBAL_STATE_PATH = Path("~/.favtree/global-state.json")


class StorageBackend(Protocol):
    """Interface shared by the document backends."""

    def load(self) -> Optional[ForestDocument]: ...

    def save(self, document: ForestDocument) -> None: ...


def _atomic_write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` as pretty JSON to ``path`` via a sibling temp file.

    Args:
        path: Destination file.
        payload: JSON-serializable data.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def _parse_document(raw: Any, *, source: str) -> Optional[ForestDocument]:
    try:
        return ForestDocument.model_validate(raw)
    except PydanticValidationError as exc:
        LOGGER.error("Ignoring invalid favorites data in %s: %s", source, exc)
        return None


class WorkspaceBackend:
    """Store the document as JSON inside the project's tooling directory."""

    def __init__(self, root: Path | None, dirname: str = DEFAULT_WORKSPACE_DIRNAME) -> None:
        """Initialize the backend for a project root.

        Args:
            root: Project root, or ``None`` when no project is open.
            dirname: Name of the tooling directory under the root.
        """
        self._root = root
        self._dirname = dirname

    @property
    def path(self) -> Optional[Path]:
        """Return the document path, or ``None`` without a project root."""
        if self._root is None:
            return None
        return self._root / self._dirname / WORKSPACE_FILENAME

    def load(self) -> Optional[ForestDocument]:
        """Read the document; unreadable content is logged and treated as absent."""
        path = self.path
        if path is None:
            LOGGER.warning("No project root available; workspace favorites are empty.")
            return None
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.error("Error loading workspace favorites from %s: %s", path, exc)
            return None
        return _parse_document(raw, source=str(path))

    def save(self, document: ForestDocument) -> None:
        """Overwrite the document file atomically.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self.path
        if path is None:
            LOGGER.warning("No project root available; workspace favorites were not saved.")
            return
        try:
            _atomic_write_json(path, document.to_payload())
        except OSError as exc:
            raise PersistenceError(f"Failed to save project favorites to {path}: {exc}") from exc


class GlobalStateStore:
    """Persistent key/value store shared by every project."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = (path or DEFAULT_GLOBAL_STATE_PATH).expanduser()

    @property
    def path(self) -> Path:
        """Return the resolved state file path."""
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``."""
        return self._read().get(key, default)

    def update(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, keeping every other key.

        Raises:
            OSError: If the state file cannot be written.
        """
        data = self._read()
        data[key] = value
        _atomic_write_json(self._path, data)

    def keys(self) -> list[str]:
        """Return the stored keys."""
        return list(self._read().keys())

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.error("Error reading global state from %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            LOGGER.error("Global state at %s is not a mapping; ignoring it.", self._path)
            return {}
        return raw


class GlobalBackend:
    """Store the document under one fixed key of the global state."""

    def __init__(self, state: GlobalStateStore, key: str = GLOBAL_STATE_KEY) -> None:
        self._state = state
        self._key = key

    def load(self) -> Optional[ForestDocument]:
        raw = self._state.get(self._key)
        if raw is None:
            return None
        return _parse_document(raw, source=f"{self._state.path}[{self._key}]")

    def save(self, document: ForestDocument) -> None:
        try:
            self._state.update(self._key, document.to_payload())
        except OSError as exc:
            raise PersistenceError(f"Failed to save global favorites: {exc}") from exc


__all__ = [
    "StorageBackend",
    "WorkspaceBackend",
    "GlobalStateStore",
    "GlobalBackend",
    "DEFAULT_WORKSPACE_DIRNAME",
    "WORKSPACE_FILENAME",
    "GLOBAL_STATE_KEY",
    "DEFAULT_GLOBAL_STATE_PATH",
]
