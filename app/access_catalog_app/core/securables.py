"""
Securable paths.

A securable is a schema, an object within a schema, or a column within an
object, written ``schema``, ``schema.object`` or ``schema.object.column``.
Two alternate notations are accepted on input: ``SCHEMA::name`` for a schema
and ``schema.object(column)`` for a column. Matching is case-insensitive;
the parts keep the case they were written with.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from access_catalog_app.core.errors import InvalidRequest
from access_catalog_app.core.security import normalize_name_list

LEVEL_SCHEMA = "schema"
LEVEL_OBJECT = "object"
LEVEL_COLUMN = "column"
LEVELS = (LEVEL_SCHEMA, LEVEL_OBJECT, LEVEL_COLUMN)

SCHEMA_PREFIX = "SCHEMA::"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_@#$]*$")
_COLUMN_SUFFIX_RE = re.compile(r"^(?P<object>[^()]+)\((?P<column>[^()]+)\)$")


@dataclass(frozen=True, eq=False)
class Securable:
    parts: tuple[str, ...]
    key: tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.parts, str):
            raise InvalidRequest("Securable parts must be a sequence; use parse_securable() for paths.")
        object.__setattr__(self, "parts", tuple(self.parts))
        if not 1 <= len(self.parts) <= len(LEVELS):
            raise InvalidRequest(f"Securable must have 1 to 3 parts, got {len(self.parts)}.")
        for part in self.parts:
            if not _IDENTIFIER_RE.match(str(part or "")):
                raise InvalidRequest(f"Invalid identifier '{part}' in securable path.")
        object.__setattr__(self, "key", tuple(part.casefold() for part in self.parts))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Securable):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.path

    @property
    def path(self) -> str:
        return ".".join(self.parts)

    @property
    def depth(self) -> int:
        return len(self.parts)

    @property
    def level(self) -> str:
        return LEVELS[self.depth - 1]

    @property
    def schema(self) -> str:
        return self.parts[0]

    @property
    def parent(self) -> Securable | None:
        if self.depth == 1:
            return None
        return Securable(self.parts[:-1])

    def lineage(self) -> tuple[Securable, ...]:
        """Self first, then each ancestor up to the schema."""
        return tuple(Securable(self.parts[:size]) for size in range(self.depth, 0, -1))

    def covers(self, other: Securable) -> bool:
        """True when this securable is ``other`` or one of its ancestors."""
        return self.depth <= other.depth and other.key[: self.depth] == self.key

    def child(self, name: str) -> Securable:
        return Securable(self.parts + (str(name or "").strip(),))


def parse_securable(raw_path) -> Securable:
    if isinstance(raw_path, Securable):
        return raw_path
    value = str(raw_path or "").strip()
    if not value:
        raise InvalidRequest("Securable path is required.")

    if value.upper().startswith(SCHEMA_PREFIX):
        schema_name = value[len(SCHEMA_PREFIX):].strip()
        if "." in schema_name:
            raise InvalidRequest(f"Schema securable '{raw_path}' must not contain '.'.")
        return Securable((schema_name,))

    column_match = _COLUMN_SUFFIX_RE.match(value)
    if column_match:
        object_parts = [part.strip() for part in column_match.group("object").split(".")]
        if len(object_parts) != 2:
            raise InvalidRequest(f"Column securable '{raw_path}' must be written schema.object(column).")
        return Securable(tuple(object_parts) + (column_match.group("column").strip(),))

    return Securable(tuple(part.strip() for part in value.split(".")))


def object_columns(raw_object, columns) -> tuple[Securable, ...]:
    target = parse_securable(raw_object)
    if target.level != LEVEL_OBJECT:
        raise InvalidRequest(f"'{target.path}' is not an object securable (expected schema.object).")
    names = normalize_name_list(columns, "columns")
    if not names:
        raise InvalidRequest("At least one column is required.")
    return tuple(dict.fromkeys(target.child(name) for name in names))
