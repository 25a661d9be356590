"""Configuration models describing favtree settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FavtreeBaseModel(BaseModel):
    """Shared configuration for favtree settings models."""

    model_config = ConfigDict(extra="forbid")


class StorageSettings(FavtreeBaseModel):
    """Where the forest document is persisted.

    Attributes:
        location: ``workspace`` stores the document inside the project;
            ``global`` stores it in the cross-project state file.
        global_state_path: Location of the cross-project state file.
    """

    location: Literal["workspace", "global"] = "workspace"
    global_state_path: str = "~/.favtree/global-state.json"


class ViewSettings(FavtreeBaseModel):
    """Presentation preferences for listing groups.

    Attributes:
        sort_order: Ordering applied to every sibling list when rendering.
        show_file_icons: Whether file and folder rows carry an icon prefix.
    """

    sort_order: Literal["alphabetical", "custom", "recent", "dateCreated"] = "dateCreated"
    show_file_icons: bool = True


class BehaviorSettings(FavtreeBaseModel):
    """Command behavior switches.

    Attributes:
        open_all_files_limit: Maximum files opened by a single bulk open.
        confirm_delete: Whether deleting a group asks for confirmation.
        enable_drag_and_drop: Whether drop operations are honored.
    """

    open_all_files_limit: int = Field(default=10, ge=1)
    confirm_delete: bool = True
    enable_drag_and_drop: bool = True


class LoggingSettings(FavtreeBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: str = "WARNING"


class FavtreeConfig(FavtreeBaseModel):
    """Top-level configuration struct for favtree.

    Attributes:
        storage: Persistence backend settings.
        view: Presentation settings.
        behavior: Command behavior settings.
        logging: Logging configuration.
    """

    storage: StorageSettings = Field(default_factory=StorageSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)
    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "FavtreeBaseModel",
    "StorageSettings",
    "ViewSettings",
    "BehaviorSettings",
    "LoggingSettings",
    "FavtreeConfig",
]
