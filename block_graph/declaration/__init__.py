"""Component declarations: DSL parser, validation and serialization."""

from __future__ import annotations

from block_graph.declaration.parser import DeclarationParser, parse, serialize, tokenize
from block_graph.declaration.schema import (
    BLOCK_DEP_RE,
    BLOCK_NAME_RE,
    Declaration,
    block_name,
    validate,
)

__all__ = [
    "BLOCK_DEP_RE",
    "BLOCK_NAME_RE",
    "Declaration",
    "DeclarationParser",
    "block_name",
    "parse",
    "serialize",
    "tokenize",
    "validate",
]
