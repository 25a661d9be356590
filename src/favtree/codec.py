"""Export and import of the portable forest document."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import ValidationError as PydanticValidationError

from favtree.store.errors import FormatError
from favtree.store.models import ForestDocument
from favtree.store.mutations import MutationEngine

LOGGER = logging.getLogger(__name__)

ImportMode = Literal["replace", "merge"]
IMPORT_MODE_LABELS: dict[ImportMode, str] = {
    "replace": "Replace existing groups",
    "merge": "Merge with existing groups",
}


@dataclass(slots=True)
class ImportResult:
    """Outcome of applying an imported document.

    Attributes:
        mode: Policy that was applied.
        added: Names of top-level groups appended or swapped in.
        skipped: Names of imported top-level groups dropped by a merge.
    """

    mode: ImportMode
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def export_document(document: ForestDocument) -> bytes:
    """Serialize the live document as pretty-printed UTF-8 JSON."""
    return json.dumps(document.to_payload(), indent=2, ensure_ascii=False).encode("utf-8")


def parse_document(data: bytes | str) -> ForestDocument:
    """Parse caller-supplied bytes into a document without applying it.

    Raises:
        FormatError: If the payload is not JSON, lacks a version tag, has a
            non-list ``groups`` field, or holds malformed groups.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        raw = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"Import data is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise FormatError("Import data must be a JSON object")
    if not raw.get("version"):
        raise FormatError("Import data is missing its version tag")
    if not isinstance(raw.get("groups"), list):
        raise FormatError("Import data must contain a list of groups")

    try:
        return ForestDocument.model_validate(raw)
    except PydanticValidationError as exc:
        raise FormatError(f"Import data contains malformed groups: {exc}") from exc


def import_document(engine: MutationEngine, data: bytes | str, mode: ImportMode) -> ImportResult:
    """Parse ``data`` and apply it to the engine's store under ``mode``.

    A malformed document raises before anything is applied. ``replace``
    swaps the whole document; ``merge`` appends imported top-level groups
    whose names are not already used at the top level.

    Raises:
        FormatError: If the document is malformed.
        ValueError: If ``mode`` is unknown.
    """
    document = parse_document(data)
    result = ImportResult(mode=mode)

    if mode == "replace":
        result.added = [group.name for group in document.groups]
        engine.replace_document(document)
    elif mode == "merge":
        existing = {group.name for group in engine.store.get_all_top_level()}
        incoming = []
        for group in document.groups:
            if group.name in existing:
                result.skipped.append(group.name)
            else:
                incoming.append(group)
                result.added.append(group.name)
        engine.append_groups(incoming)
    else:
        raise ValueError(f"Unknown import mode: {mode!r}")

    LOGGER.info(
        "Imported favorites (%s): %d added, %d skipped",
        mode,
        len(result.added),
        len(result.skipped),
    )
    return result


__all__ = [
    "ImportMode",
    "IMPORT_MODE_LABELS",
    "ImportResult",
    "export_document",
    "parse_document",
    "import_document",
]
