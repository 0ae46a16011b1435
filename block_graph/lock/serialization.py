"""Lossless JSON encoding of maps, sets and paths for lock files.

Maps and sets are written as envelopes::

    {"%data": "%data:Map", "%data:Map": [[key, value], ...]}
    {"%data": "%data:Set", "%data:Set": [value, ...]}

with entries sorted so identical graphs produce identical files. Paths
are written relative to a base directory.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

DATA_KEY = "%data"
MAP_KIND = "%data:Map"
SET_KIND = "%data:Set"


class SerializableMap(dict):
    """A dict that is written as a ``%data:Map`` envelope."""


def serializable_map(data: Any = ()) -> SerializableMap:
    return SerializableMap(data)


def serializable_set(data: Any = ()) -> set:
    return set(data)


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def to_jsonable(value: Any, base: Path) -> Any:
    """Convert ``value`` into plain JSON data, relativizing paths to ``base``."""
    if isinstance(value, Path):
        return Path(os.path.relpath(value, base)).as_posix()
    if hasattr(value, "to_record"):
        return to_jsonable(value.to_record(), base)
    if isinstance(value, SerializableMap):
        items = [[to_jsonable(k, base), to_jsonable(v, base)] for k, v in value.items()]
        items.sort(key=lambda kv: _sort_key(kv[0]))
        return {DATA_KEY: MAP_KIND, MAP_KIND: items}
    if isinstance(value, (set, frozenset)):
        values = sorted((to_jsonable(v, base) for v in value), key=_sort_key)
        return {DATA_KEY: SET_KIND, SET_KIND: values}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v, base) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v, base) for v in value]
    return value


def revive(obj: dict[str, Any]) -> Any:
    """``json`` object hook turning envelopes back into maps and sets."""
    kind = obj.get(DATA_KEY)
    if kind == MAP_KIND:
        return SerializableMap((k, v) for k, v in obj[MAP_KIND])
    if kind == SET_KIND:
        return set(obj[SET_KIND])
    return obj


def dumps(value: Any, base: Path, **kwargs: Any) -> str:
    return json.dumps(to_jsonable(value, base), **kwargs)


def loads(text: str) -> Any:
    return json.loads(text, object_hook=revive)
