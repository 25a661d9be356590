"""Configuration management for favtree.

Settings live in a YAML file (``~/.favtree/config.yaml`` by default) and are
layered with ``FAVTREE__SECTION__KEY`` environment variables and CLI
overrides. The file is re-read on every ``load`` so that a change written by
one command, such as switching the sort order, is seen by the next storage
access in the same process.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import FavtreeConfig
from .resolver import (
    ENV_PREFIX,
    flatten_for_env,
    parse_env_overrides,
    resolve_with_precedence,
    set_dotted,
)

DEFAULT_CONFIG_PATH = Path("~/.favtree/config.yaml")
_HEADER_LINES = (
    "# favtree configuration file",
    "# Edit with `favtree config edit` or change one key with `favtree config set`.",
)


class ConfigManager:
    """Read, validate, and write the favtree settings file."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        cli_overrides: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            config_path: Settings file; defaults to ``~/.favtree/config.yaml``.
            env: Environment consulted for overrides; defaults to ``os.environ``.
            cli_overrides: Dotted or nested overrides applied last.
        """
        self._path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._environ: Mapping[str, str] = os.environ if env is None else env
        self._cli = dict(cli_overrides or {})

    @property
    def config_path(self) -> Path:
        """Return the settings file location."""
        return self._path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> FavtreeConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Overrides replacing the ones given at construction.
            include_env: Whether ``FAVTREE__`` variables are applied.
            ensure_file: Whether to write a default file when none exists.
            env_overrides: Environment mapping used instead of the manager's.

        Returns:
            FavtreeConfig: Validated settings.

        Raises:
            ConfigError: If the file or any override is invalid.
        """
        if ensure_file:
            self.ensure_exists()
        environ: Mapping[str, str] = {}
        if include_env:
            environ = self._environ if env_overrides is None else env_overrides
        return resolve_with_precedence(
            defaults=FavtreeConfig(),
            file_overrides=self._read_file(),
            env_overrides=parse_env_overrides(environ) or None,
            cli_overrides=self._cli if cli_overrides is None else cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in the settings file."""
        return self._read_file()

    def save(self, config: FavtreeConfig | Mapping[str, Any]) -> None:
        """Replace the settings file with ``config``."""
        payload = config.model_dump(mode="python") if isinstance(config, FavtreeConfig) else config
        self._write_file(payload)

    def set_value(self, dotted_key: str, value: Any) -> None:
        """Store ``value`` at ``dotted_key`` after checking the result validates.

        Raises:
            ConfigError: If the key is empty or the new settings are invalid.
        """
        path = [part.strip() for part in dotted_key.split(".") if part.strip()]
        if not path:
            raise ConfigError("Key must be a dotted path such as 'view.sort_order'.")
        stored = self._read_file()
        set_dotted(stored, path, value)
        resolve_with_precedence(defaults=FavtreeConfig(), file_overrides=stored)
        self._write_file(stored)

    def ensure_exists(self) -> Path:
        """Write the default settings when the file is missing; return its path."""
        if not self._path.exists():
            self.save(FavtreeConfig())
        return self._path

    def read_text(self) -> str:
        """Return the settings file verbatim, or an empty string when absent."""
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def _read_file(self) -> dict[str, Any]:
        text = self.read_text()
        try:
            data = yaml.safe_load(text) if text else None
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {self._path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self._path} must contain a mapping at the top level.")
        return data

    def _write_file(self, data: Mapping[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body = yaml.safe_dump(dict(data), sort_keys=False)
        header = "\n".join((*_HEADER_LINES, f"# Last updated: {stamp}"))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(f"{header}\n{body}", encoding="utf-8")


__all__ = [
    "ConfigManager",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "FavtreeConfig",
    "flatten_for_env",
    "resolve_with_precedence",
]
