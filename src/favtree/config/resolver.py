"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping, Sequence

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import FavtreeConfig

ENV_PREFIX = "FAVTREE__"


def resolve_with_precedence(
    *,
    defaults: FavtreeConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> FavtreeConfig:
    """Layer override sources over the defaults and validate the result.

    Later sources win: file, then environment, then CLI. Keys may be nested
    mappings or dotted paths such as ``view.sort_order``.

    Raises:
        ConfigError: If a source is malformed or the merged values are invalid.
    """
    merged: dict[str, Any] = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for source_name, layer in layers:
        if layer is None:
            continue
        merged = merge_overrides(merged, expand_dotted(layer, source_name=source_name))

    try:
        return FavtreeConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def expand_dotted(source: Mapping[str, Any], *, source_name: str = "override") -> dict[str, Any]:
    """Return ``source`` with dotted keys expanded into nested mappings."""
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, source_name=source_name)
        set_dotted(expanded, key.split("."), value)
    return expanded


def set_dotted(target: dict[str, Any], path: Sequence[str], value: Any) -> None:
    """Assign ``value`` at ``path`` inside ``target``, creating mappings on the way.

    Raises:
        ConfigError: If a non-mapping value sits on the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config."
            )
        node = child
    leaf = path[-1]
    if isinstance(value, MappingABC) and isinstance(node.get(leaf), MappingABC):
        node[leaf] = merge_overrides(node[leaf], value)
    else:
        node[leaf] = value


def merge_overrides(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overrides`` into a copy of ``base``."""
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = merge_overrides(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def parse_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``FAVTREE__SECTION__KEY`` variables into a nested override mapping.

    Values are parsed as YAML scalars so ``false`` and ``12`` arrive typed.
    """
    overrides: dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not path:
            continue
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        set_dotted(overrides, path, value)
    return overrides


def flatten_for_env(config: FavtreeConfig) -> Dict[str, str]:
    """Render the config as ``FAVTREE__SECTION__KEY`` environment variables."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, (dict, list)):
                flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
            else:
                flat[env_key] = "null" if value is None else str(value)
    return flat


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "expand_dotted",
    "set_dotted",
    "merge_overrides",
    "parse_env_overrides",
    "flatten_for_env",
]
