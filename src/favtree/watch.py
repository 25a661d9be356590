"""Forward external file deletions into the group store."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from favtree.persistence import DEFAULT_WORKSPACE_DIRNAME
from favtree.session import Session

LOGGER = logging.getLogger(__name__)

RemovalCallback = Callable[[Path, int], None]


class _DeletionHandler(FileSystemEventHandler):
    def __init__(self, watcher: "DeletionWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode()
        self._watcher.handle_deleted(Path(src_path))


class DeletionWatcher:
    """Watch a project root and sweep deleted files out of every top-level group."""

    def __init__(
        self,
        session: Session,
        *,
        on_removed: Optional[RemovalCallback] = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            session: Session whose engine receives the deletions.
            on_removed: Optional callback receiving each deleted path and the
                number of references removed for it.

        Raises:
            ValueError: If the session has no project root to watch.
        """
        if session.root is None:
            raise ValueError("A project root is required to watch for deletions.")
        self._session = session
        self._root = session.root
        self._on_removed = on_removed
        self._lock = threading.Lock()
        self._observer: Optional[Observer] = None

    def handle_deleted(self, path: Path) -> int:
        """Remove ``path`` from the forest; return the number of references removed."""
        try:
            relative_parts = path.relative_to(self._root).parts
        except ValueError:
            return 0
        if relative_parts and relative_parts[0] == DEFAULT_WORKSPACE_DIRNAME:
            return 0
        with self._lock:
            removed = self._session.engine.remove_path_everywhere(path)
        if self._on_removed is not None:
            self._on_removed(path, removed)
        return removed

    def start(self) -> None:
        """Begin observing the project root in a background thread."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(_DeletionHandler(self), str(self._root), recursive=True)
        observer.start()
        self._observer = observer
        LOGGER.info("Watching %s for deleted files", self._root)

    def stop(self) -> None:
        """Stop observing and wait for the observer thread to finish."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


__all__ = ["DeletionWatcher", "RemovalCallback"]
