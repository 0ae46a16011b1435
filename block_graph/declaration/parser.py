"""Parser for the component declaration DSL.

A declaration is a single call chain::

    package('b-foo')
        .extends('b-bar')
        .dependencies('b-baz', 'b-qux')
        .libs('jquery');

``extends()`` and ``mixin()`` are mutually exclusive and may only follow
``package()`` directly; ``dependencies()`` and ``libs()`` may follow in any
order. String arguments are split on commas, arrays are flattened and
``null`` values are dropped. Directive strings (``'use strict';``) and
comments around the chain are ignored.

The source is tokenized and interpreted by an explicit builder, nothing is
ever executed.
"""

from __future__ import annotations

import re
import threading
from typing import Any

from block_graph.declaration.schema import Declaration, validate
from block_graph.errors import DeclarationError

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>//[^\n]*|/\*.*?\*/)
    |(?P<string>'(?:\\.|[^'\\\n])*'|"(?:\\.|[^"\\\n])*"|`(?:\\.|[^`\\$])*`)
    |(?P<ident>[A-Za-z_$][\w$]*)
    |(?P<punct>[().,;\[\]])
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}
_NULLS = ("null", "undefined")
_SPLIT_RE = re.compile(r"\s*,\s*")


class _Token:
    __slots__ = ("kind", "value", "pos")

    def __init__(self, kind: str, value: str, pos: int):
        self.kind = kind
        self.value = value
        self.pos = pos

    def __repr__(self) -> str:
        return f"{self.kind}:{self.value!r}@{self.pos}"


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if not m:
            raise DeclarationError(f"Unexpected character {source[pos]!r} at offset {pos}")
        kind = m.lastgroup
        if kind == "string":
            tokens.append(_Token("string", _unquote(m.group()), pos))
        elif kind in ("ident", "punct"):
            tokens.append(_Token(kind, m.group(), pos))
        pos = m.end()
    return tokens


class DeclarationBuilder:
    """Accumulates the fields set by a declaration call chain."""

    def __init__(self, name: str):
        self.record: dict[str, Any] = {"name": name}

    def extends(self, parent: str | None) -> None:
        self.record["parent"] = parent

    def mixin(self) -> None:
        self.record["mixin"] = True

    def dependencies(self, names: list[str]) -> None:
        self.record["dependencies"] = names

    def libs(self, libs: list[str]) -> None:
        self.record["libs"] = libs

    def build(self) -> Declaration:
        return validate(self.record)


def _flatten(values: list[Any]) -> list[str]:
    result: list[str] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, list):
            result.extend(_flatten(value))
            continue
        result.extend(part for part in _SPLIT_RE.split(value.strip()) if part)
    return result


class _ChainParser:
    def __init__(self, tokens: list[_Token]):
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> _Token | None:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def next(self) -> _Token:
        tok = self.peek()
        if tok is None:
            raise DeclarationError("Unexpected end of declaration")
        self.pos += 1
        return tok

    def expect(self, kind: str, value: str | None = None) -> _Token:
        tok = self.next()
        if tok.kind != kind or (value is not None and tok.value != value):
            want = value or kind
            raise DeclarationError(f"Expected {want!r} at offset {tok.pos}, got {tok.value!r}")
        return tok

    def at(self, kind: str, value: str | None = None) -> bool:
        tok = self.peek()
        return tok is not None and tok.kind == kind and (value is None or tok.value == value)

    def parse(self) -> DeclarationBuilder:
        builder: DeclarationBuilder | None = None

        while self.peek() is not None:
            if self.at("punct", ";"):
                self.next()
            elif self.at("string"):
                # directive prologue, e.g. 'use strict'
                self.next()
            elif self.at("ident", "package"):
                if builder is not None:
                    raise DeclarationError("A declaration may contain only one package() call")
                builder = self.parse_chain()
            else:
                tok = self.next()
                raise DeclarationError(f"Unexpected token {tok.value!r} at offset {tok.pos}")

        if builder is None:
            raise DeclarationError("No package() call found")
        return builder

    def parse_chain(self) -> DeclarationBuilder:
        self.expect("ident", "package")
        args = self.parse_args()
        if len(args) != 1 or not isinstance(args[0], str):
            raise DeclarationError("package() expects a single string name", field="name")

        builder = DeclarationBuilder(args[0])
        last: str | None = None

        while self.at("punct", "."):
            self.next()
            method = self.expect("ident")
            args = self.parse_args()

            if method.value in ("extends", "mixin"):
                if last is not None:
                    raise DeclarationError(f".{method.value}() must directly follow package()")
                if method.value == "extends":
                    if len(args) > 1 or (args and not isinstance(args[0], (str, type(None)))):
                        raise DeclarationError(".extends() expects a single name", field="parent")
                    builder.extends(args[0] if args else None)
                else:
                    if args:
                        raise DeclarationError(".mixin() takes no arguments", field="mixin")
                    builder.mixin()

            elif method.value in ("dependencies", "libs"):
                if last == method.value:
                    raise DeclarationError(f".{method.value}() cannot be chained twice in a row")
                getattr(builder, method.value)(_flatten(args))

            else:
                raise DeclarationError(f"Unknown declaration method .{method.value}() at offset {method.pos}")

            last = method.value

        return builder

    def parse_args(self) -> list[Any]:
        self.expect("punct", "(")
        args = self.parse_values(")")
        self.expect("punct", ")")
        return args

    def parse_values(self, closing: str) -> list[Any]:
        values: list[Any] = []
        while not self.at("punct", closing):
            values.append(self.parse_value())
            if self.at("punct", ","):
                self.next()
            elif not self.at("punct", closing):
                tok = self.next()
                raise DeclarationError(f"Expected ',' or {closing!r} at offset {tok.pos}, got {tok.value!r}")
        return values

    def parse_value(self) -> Any:
        tok = self.next()
        if tok.kind == "string":
            return tok.value
        if tok.kind == "ident" and tok.value in _NULLS:
            return None
        if tok.kind == "punct" and tok.value == "[":
            values = self.parse_values("]")
            self.expect("punct", "]")
            return values
        raise DeclarationError(f"Unsupported argument {tok.value!r} at offset {tok.pos}")


class DeclarationParser:
    """Parses declaration sources, memoizing results by exact source text."""

    def __init__(self):
        self._cache: dict[str, Declaration] = {}
        self._lock = threading.Lock()

    def parse(self, source: str, test: bool = False) -> Declaration | None:
        """Parse ``source`` into a Declaration.

        With ``test=True`` sources that contain no ``package(`` call yield
        ``None`` instead of raising.
        """
        if test and "package(" not in source:
            return None

        cached = self._cache.get(source)
        if cached is not None:
            return cached

        declaration = _ChainParser(tokenize(source)).parse().build()
        with self._lock:
            self._cache.setdefault(source, declaration)
        return declaration

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


_default_parser = DeclarationParser()


def parse(source: str, test: bool = False) -> Declaration | None:
    return _default_parser.parse(source, test=test)


def serialize(declaration: Declaration) -> str:
    return declaration.to_source()
