"""JSON text <-> list conversion for the `diasSemana` / `atribuidos` columns."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decoded:
    """Result of decoding a stored list column.

    `recovered` is True when the stored text was unusable and `value` is the
    empty-list fallback; `error` then holds the reason.
    """

    value: list[Any] = field(default_factory=list)
    recovered: bool = False
    error: str | None = None


def encode_list(value: Any) -> str | None:
    """Empty or missing lists are stored as NULL."""
    if not value:
        return None
    return json.dumps(list(value), ensure_ascii=False)


def decode_list(raw: str | None, *, field_name: str = "list") -> Decoded:
    if raw is None or raw == "":
        return Decoded()
    try:
        val = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Malformed JSON in %s, using []: %s", field_name, e)
        return Decoded(recovered=True, error=str(e))
    if val is None:
        return Decoded()
    if not isinstance(val, list):
        msg = f"expected a JSON array, got {type(val).__name__}"
        logger.warning("Unexpected value in %s, using []: %s", field_name, msg)
        return Decoded(recovered=True, error=msg)
    return Decoded(value=val)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def contains_assignee(assignees: list[Any], employee_id: int) -> bool:
    """True if any assignee entry has a numeric `id` equal to employee_id."""
    for entry in assignees:
        if isinstance(entry, dict) and _as_int(entry.get("id")) == employee_id:
            return True
    return False
