"""Flatmap codec for legacy attribute bags.

The oldest persisted states are a single level of string keys encoding
structural paths, with string values:

    ports.#           = "2"
    ports.0.internal  = "80"
    ports.0.protocol  = "tcp"
    labels.%          = "1"
    labels.env        = "dev"

Lists carry a ``#`` count and positional (or, for sets, hashed) indices; maps
carry a ``%`` count and keep their keys verbatim, dots included. Expansion
needs a Block descriptor to know which scalars are integers or booleans and
which attributes are maps; undescribed attributes are inferred from their
keys and kept as strings.
"""

from collections.abc import Mapping
from typing import Any

from ..errors import MigrationError
from .schema import Attr, AttrType, Block, string, string_map
from .values import join_path

LIST_COUNT = "#"
MAP_COUNT = "%"


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _coerce(value: str, attr: Attr | None, key: str) -> Any:
    kind = attr.type if attr is not None else AttrType.STRING
    if kind == AttrType.INT:
        try:
            return int(value) if value != "" else 0
        except ValueError:
            raise MigrationError(f"expected an integer, got {value!r}", key)
    if kind == AttrType.FLOAT:
        try:
            return float(value) if value != "" else 0.0
        except ValueError:
            raise MigrationError(f"expected a number, got {value!r}", key)
    if kind == AttrType.BOOL:
        if value in ("true", "1"):
            return True
        if value in ("false", "0", ""):
            return False
        raise MigrationError(f"expected a boolean, got {value!r}", key)
    return value


def _subkeys(flat: Mapping[str, str], key: str) -> list[str]:
    """Immediate child segments of ``key``, in first-seen order."""
    prefix = key + "." if key else ""
    seen: dict[str, None] = {}
    for k in flat:
        if k.startswith(prefix):
            rest = k[len(prefix):]
            seen.setdefault(rest.split(".", 1)[0], None)
    return list(seen)


def _has_children(flat: Mapping[str, str], key: str) -> bool:
    prefix = key + "."
    return any(k.startswith(prefix) for k in flat)


def _index_key(segment: str) -> int:
    try:
        return int(segment)
    except ValueError:
        raise MigrationError(f"expected a list index, got {segment!r}")


def _infer(flat: Mapping[str, str], key: str) -> Attr:
    if f"{key}.{LIST_COUNT}" in flat:
        return Attr(AttrType.LIST)
    if f"{key}.{MAP_COUNT}" in flat:
        return string_map()
    if key in flat:
        return string()
    children = [s for s in _subkeys(flat, key)]
    if children and all(s.isdigit() for s in children):
        return Attr(AttrType.LIST)
    return string_map()


def _expand_attr(flat: Mapping[str, str], key: str, attr: Attr | None) -> Any:
    if attr is None:
        attr = _infer(flat, key)

    if attr.is_collection:
        indices = [s for s in _subkeys(flat, key) if s != LIST_COUNT]
        try:
            indices.sort(key=_index_key)
        except MigrationError as e:
            raise MigrationError(str(e), key)
        items = []
        for index in indices:
            item_key = f"{key}.{index}"
            if isinstance(attr.elem, Block) or (attr.elem is None and _has_children(flat, item_key)):
                elem_block = attr.elem if isinstance(attr.elem, Block) else None
                items.append(_expand_block(flat, item_key, elem_block))
            else:
                items.append(_coerce(flat[item_key], attr.elem, item_key))
        return items

    if attr.type == AttrType.MAP:
        prefix = key + "."
        elem = attr.elem if isinstance(attr.elem, Attr) else None
        return {
            k[len(prefix):]: _coerce(v, elem, k)
            for k, v in flat.items()
            if k.startswith(prefix) and k != prefix + MAP_COUNT
        }

    if key not in flat:
        raise MigrationError("expected a scalar value", key)
    return _coerce(flat[key], attr, key)


def _expand_block(flat: Mapping[str, str], prefix: str, block: Block | None) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name in _subkeys(flat, prefix):
        attr = block.get(name) if block is not None else None
        result[name] = _expand_attr(flat, join_path(prefix, name), attr)
    return result


def expand(flat: Mapping[str, str], block: Block) -> dict[str, Any]:
    """Turn a flatmap into nested attributes, typed per ``block``."""
    for k, v in flat.items():
        if not isinstance(v, str):
            raise MigrationError(f"flatmap values must be strings, got {type(v).__name__}", k)
    return _expand_block(flat, "", block)


def _flatten_value(key: str, value: Any, attr: Attr | None, out: dict[str, str]) -> None:
    if isinstance(value, list):
        out[f"{key}.{LIST_COUNT}"] = str(len(value))
        elem = attr.elem if attr is not None else None
        for index, item in enumerate(value):
            item_key = f"{key}.{index}"
            if isinstance(item, dict):
                _flatten_block(item_key, item, elem if isinstance(elem, Block) else None, out)
            else:
                out[item_key] = _format_scalar(item)
    elif isinstance(value, dict):
        out[f"{key}.{MAP_COUNT}"] = str(len(value))
        for map_key, item in value.items():
            out[f"{key}.{map_key}"] = _format_scalar(item)
    else:
        out[key] = _format_scalar(value)


def _flatten_block(prefix: str, attributes: Mapping[str, Any], block: Block | None, out: dict[str, str]) -> None:
    for name, value in attributes.items():
        attr = block.get(name) if block is not None else None
        _flatten_value(join_path(prefix, name), value, attr, out)


def flatten(attributes: Mapping[str, Any], block: Block | None = None) -> dict[str, str]:
    """Nested attributes to flatmap."""
    out: dict[str, str] = {}
    _flatten_block("", attributes, block, out)
    return out


def read_attribute(flat: Mapping[str, str], name: str, attr: Attr | None = None) -> Any:
    """Expand one attribute of a flatmap; None if the flatmap lacks it."""
    if name not in flat and not _has_children(flat, name):
        return None
    return _expand_attr(flat, name, attr)


def drop_attribute(flat: Mapping[str, str], name: str) -> dict[str, str]:
    """Copy of ``flat`` without ``name`` and everything below it."""
    prefix = name + "."
    return {k: v for k, v in flat.items() if k != name and not k.startswith(prefix)}


def write_attribute(flat: Mapping[str, str], name: str, value: Any, attr: Attr | None = None) -> dict[str, str]:
    """Copy of ``flat`` with ``name`` replaced by the encoding of ``value``."""
    out = drop_attribute(flat, name)
    _flatten_value(name, value, attr, out)
    return out
