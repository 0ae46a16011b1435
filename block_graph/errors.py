"""Exception hierarchy for block-graph."""

from __future__ import annotations

from pathlib import Path


class BlockGraphError(Exception):
    """Base class for every error raised by block-graph."""


class ConfigError(BlockGraphError):
    """The project rc file is unreadable or invalid."""


class DeclarationError(BlockGraphError):
    """A declaration source or record is malformed.

    ``field`` names the offending declaration field when it is known
    (``None`` for syntax errors in the DSL itself).
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class BlockNotFoundError(BlockGraphError):
    """A referenced component name resolves to no block."""

    def __init__(self, name: str, referrer: str | None = None):
        msg = f"Block {name!r} not found"
        if referrer:
            msg += f" (referenced by {referrer!r})"
        super().__init__(msg)
        self.name = name
        self.referrer = referrer


class AmbiguousContextError(BlockGraphError):
    """An ancestor-layer reference was resolved without a context path."""

    def __init__(self, name: str):
        super().__init__(f"Context for block {name!r} is not defined")
        self.name = name


class LockFileCorruptError(BlockGraphError):
    """A lock file exists but cannot be decoded."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Lock file {path} is corrupt: {reason}")
        self.path = path
