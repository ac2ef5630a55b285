"""Safe accessors over loosely-typed persisted state.

Persisted attributes are plain JSON-like values. Migration steps never index
into them blindly: every access goes through one of these helpers, which
return the typed value or raise MigrationError naming the offending path.
"""

from collections.abc import Mapping
from typing import Any, Union

from ..errors import MigrationError

StateValue = Union[str, int, float, bool, None, list["StateValue"], dict[str, "StateValue"]]


def join_path(*parts: object) -> str:
    return ".".join(str(p) for p in parts if p != "")


def _type_name(value: Any) -> str:
    return "null" if value is None else type(value).__name__


def expect_map(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MigrationError(f"expected a map, got {_type_name(value)}", path)
    return value


def expect_list(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise MigrationError(f"expected a list, got {_type_name(value)}", path)
    return value


def expect_int(value: Any, path: str) -> int:
    """Accept ints and integral strings (flatmap stores everything as text)."""
    if isinstance(value, bool):
        raise MigrationError("expected an integer, got bool", path)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise MigrationError(f"expected an integer, got {value!r}", path)


def optional_map(parent: Mapping[str, Any], key: str, path: str) -> dict[str, Any] | None:
    """The map under ``key``, or None when the key is absent or null."""
    value = parent.get(key)
    if value is None:
        return None
    return expect_map(value, join_path(path, key))


def optional_list(parent: Mapping[str, Any], key: str, path: str) -> list[Any] | None:
    """The list under ``key``, or None when the key is absent or null."""
    value = parent.get(key)
    if value is None:
        return None
    return expect_list(value, join_path(path, key))


def first_block(parent: Mapping[str, Any], key: str, path: str, required: bool = False) -> dict[str, Any] | None:
    """First element of a single-item block list (``task_spec.0``).

    Returns None for an absent or empty list unless ``required``.
    """
    items = optional_list(parent, key, path)
    if not items:
        if required:
            raise MigrationError("required block is missing", join_path(path, key))
        return None
    return expect_map(items[0], join_path(path, key, 0))
