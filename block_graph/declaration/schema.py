"""Declaration value object and its validation rules."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from block_graph.errors import DeclarationError
from block_graph.models import BLOCK_TYPE_LIST, BLOCK_TYPES, BlockType

BASE_BLOCK_NAME = f"[{''.join(BLOCK_TYPE_LIST)}]-[a-z0-9][a-z0-9-_]*"
BLOCK_NAME_RE = re.compile(f"^{BASE_BLOCK_NAME}$")
# Dependency references may be qualified with "@" or a "<package>/" prefix
BLOCK_DEP_RE = re.compile(f"^(@|[a-z][a-z0-9-_]*/)?{BASE_BLOCK_NAME}$")


def block_name(name: str) -> bool:
    """True if ``name`` is a valid plain component name."""
    return BLOCK_NAME_RE.match(name) is not None


class Declaration(BaseModel):
    """Normalized, immutable component declaration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    parent: str | None = None
    mixin: bool = False
    dependencies: tuple[str, ...] = Field(default_factory=tuple)
    libs: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not block_name(v):
            raise ValueError(f"{v!r} is not a valid block name")
        return v

    @field_validator("parent")
    @classmethod
    def _check_parent(cls, v: str | None) -> str | None:
        if v is not None and not BLOCK_DEP_RE.match(v):
            raise ValueError(f"{v!r} is not a valid block name")
        return v

    @field_validator("mixin", mode="before")
    @classmethod
    def _null_mixin(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("dependencies")
    @classmethod
    def _check_dependencies(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for dep in v:
            if not BLOCK_DEP_RE.match(dep):
                raise ValueError(f"{dep!r} is not a valid block name")
        return v

    @property
    def type(self) -> BlockType:
        return BLOCK_TYPES[self.name[0]]

    def to_record(self) -> dict[str, Any]:
        """Compact record: ``mixin`` replaces ``parent`` for mixins.

        A mixin's parent comes from the declarations it is folded onto, so
        it is left out here. Lock files keep the full model through
        ``model_dump`` instead.
        """
        record: dict[str, Any] = {"name": self.name}
        if self.mixin:
            record["mixin"] = True
        else:
            record["parent"] = self.parent
        record["dependencies"] = list(self.dependencies)
        record["libs"] = list(self.libs)
        return record

    def to_source(self) -> str:
        """Serialize back into the declaration DSL.

        Same policy as :meth:`to_record`: a mixin is written with
        ``.mixin()`` and no ``.extends()``.
        """
        res = f"package({_quote(self.name)})"

        if self.mixin:
            res += "\n\t.mixin()"
        elif self.parent:
            res += f"\n\t.extends({_quote(self.parent)})"

        if self.dependencies:
            res += f"\n\t.dependencies({', '.join(map(_quote, self.dependencies))})"

        if self.libs:
            res += f"\n\t.libs({', '.join(map(_quote, self.libs))})"

        return f"{res};"

    def __str__(self) -> str:
        return self.to_source()


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def validate(record: dict[str, Any] | Declaration) -> Declaration:
    """Validate a raw record and fill in defaults."""
    if isinstance(record, Declaration):
        return record
    if not isinstance(record, dict):
        raise DeclarationError(f"Invalid declaration object: expected a mapping, got {type(record).__name__}")

    try:
        return Declaration.model_validate(record)
    except ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err["loc"] else None
        raise DeclarationError(f"Invalid declaration object: {field}: {err['msg']}", field=field) from e
