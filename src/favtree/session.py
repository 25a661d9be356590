"""Wiring of configuration, persistence, store, and engine for one project."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from favtree.config import ConfigManager
from favtree.config.models import FavtreeConfig
from favtree.persistence import PersistenceAdapter
from favtree.store.mutations import MutationEngine, Notifier
from favtree.store.tree import TreeStore


@dataclass(slots=True)
class Session:
    """Owned state for one project: the store and everything acting on it.

    Attributes:
        root: Project root, or ``None`` when working without a project.
        config_manager: Source of configuration, re-read on demand.
        persistence: Adapter flushing the document after each mutation.
        store: Forest loaded once when the session opened.
        engine: Mutation engine bound to ``store`` and ``persistence``.
    """

    root: Optional[Path]
    config_manager: ConfigManager
    persistence: PersistenceAdapter
    store: TreeStore
    engine: MutationEngine

    def config(self) -> FavtreeConfig:
        """Return the configuration as it stands right now."""
        return self.config_manager.load()


def open_session(
    root: Path | None,
    *,
    config_manager: ConfigManager | None = None,
    notify: Notifier | None = None,
) -> Session:
    """Load the stored forest for ``root`` and return a ready session.

    Args:
        root: Project root; resolved to an absolute path when given.
        config_manager: Configuration source; defaults to the user config file.
        notify: Callback receiving user-facing notices from the engine.

    Returns:
        Session: Session whose store holds the loaded document.
    """
    manager = config_manager or ConfigManager()
    resolved_root = root.expanduser().resolve() if root is not None else None
    persistence = PersistenceAdapter(resolved_root, manager.load)
    store = TreeStore(persistence.load())
    engine = MutationEngine(store, persistence, notify=notify, root=resolved_root)
    return Session(
        root=resolved_root,
        config_manager=manager,
        persistence=persistence,
        store=store,
        engine=engine,
    )


__all__ = ["Session", "open_session"]
