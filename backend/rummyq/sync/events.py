"""Remote change notifications."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class EntityKind(str, Enum):
    PLAYER = "player"
    GAME = "game"


@dataclass(frozen=True)
class ChangeEvent:
    """One row-level change: what happened, to which table, and the row.

    For deletes ``row`` is the old row (at minimum its ``id``).
    """

    kind: ChangeKind
    entity: EntityKind
    row: dict[str, Any] = field(default_factory=dict)

    @property
    def row_id(self) -> str | None:
        value = self.row.get("id")
        return None if value is None else str(value)

    @classmethod
    def from_payload(cls, entity: EntityKind, payload: str) -> ChangeEvent:
        """Decode a NOTIFY payload of the form ``{"kind": ..., "row": {...}}``.

        Raises ValueError on malformed payloads.
        """
        try:
            data = json.loads(payload)
            kind = ChangeKind(data["kind"])
            row = data["row"]
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed change payload: {e}") from e
        if not isinstance(row, dict):
            raise ValueError("Malformed change payload: row is not an object")
        return cls(kind=kind, entity=entity, row=row)
