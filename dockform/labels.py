"""Label set codec.

Early schema versions stored user-defined metadata as an unordered
``{key: value}`` map; current versions store an ordered list of
``{"label": key, "value": value}`` records that is treated as a set keyed by
the label name. This module converts between the two and owns the identity
scheme used to address records.
"""

import zlib
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from .errors import DuplicateLabelError, MigrationError


def hash_label(label: str) -> int:
    """Stable, non-negative identity of a label record.

    Only the label name takes part, so changing a value keeps the identity
    and shows up as an update rather than an add plus a remove.
    """
    return zlib.crc32(label.encode("utf-8")) & 0xFFFFFFFF


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class LabelRecord(BaseModel):
    """A single ``{label, value}`` entry."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: str

    @property
    def identity(self) -> int:
        return hash_label(self.label)

    def to_raw(self) -> dict[str, str]:
        return {"label": self.label, "value": self.value}

    @classmethod
    def from_raw(cls, raw: Any, path: str = "labels") -> "LabelRecord":
        if not isinstance(raw, Mapping):
            raise MigrationError(f"expected a label record, got {type(raw).__name__}", path)
        if "label" not in raw:
            raise MigrationError("label record without 'label'", path)
        return cls(label=str(raw["label"]), value=_format_value(raw.get("value", "")))


def map_to_records(labels: Mapping[str, Any]) -> list[dict[str, str]]:
    """Convert a label map into raw ``{label, value}`` records.

    Order is irrelevant, the target representation is a set. Non-string
    values are rendered the way they would print.
    """
    return [
        {"label": str(key), "value": _format_value(value)}
        for key, value in labels.items()
    ]


def records_to_map(records: Iterable[Any], strict: bool = False) -> dict[str, str]:
    """Convert raw records (or LabelRecords) back into a label map.

    Args:
        records: Raw ``{label, value}`` dicts or LabelRecord instances
        strict: Raise DuplicateLabelError on a repeated label instead of
            letting the later record win

    Returns:
        Label name to value mapping
    """
    mapped: dict[str, str] = {}
    for index, raw in enumerate(records):
        record = raw if isinstance(raw, LabelRecord) else LabelRecord.from_raw(raw, f"labels.{index}")
        if strict and record.label in mapped:
            raise DuplicateLabelError(record.label)
        mapped[record.label] = record.value
    return mapped


class LabelDiff(BaseModel):
    """Difference between two label sets."""

    added: dict[str, str] = {}
    removed: dict[str, str] = {}
    changed: dict[str, tuple[str, str]] = {}

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class LabelSet:
    """Set of label records keyed by label name.

    Positions carry no meaning: two sets holding the same labels compare
    equal regardless of insertion order.

    Example:
        >>> labels = LabelSet.from_map({"env": "dev"})
        >>> labels.add("team", "x")
        >>> labels.to_map()
        {'env': 'dev', 'team': 'x'}
    """

    def __init__(self, records: Iterable[LabelRecord] = ()):
        self._records: dict[str, LabelRecord] = {}
        for record in records:
            self._records[record.label] = record

    @classmethod
    def from_map(cls, labels: Mapping[str, Any] | None) -> "LabelSet":
        return cls(LabelRecord(label=k, value=_format_value(v)) for k, v in (labels or {}).items())

    @classmethod
    def from_raw(cls, raw: Any, path: str = "labels") -> "LabelSet":
        """Build a set from a persisted value: a record list, a legacy map or nothing."""
        if raw is None:
            return cls()
        if isinstance(raw, Mapping):
            return cls.from_map(raw)
        if isinstance(raw, (list, tuple)):
            return cls(LabelRecord.from_raw(item, f"{path}.{i}") for i, item in enumerate(raw))
        raise MigrationError(f"expected labels as a list or map, got {type(raw).__name__}", path)

    def add(self, label: str, value: Any) -> None:
        self._records[label] = LabelRecord(label=label, value=_format_value(value))

    def discard(self, label: str) -> None:
        self._records.pop(label, None)

    def get(self, label: str, default: str | None = None) -> str | None:
        record = self._records.get(label)
        return record.value if record is not None else default

    def __contains__(self, label: object) -> bool:
        if isinstance(label, LabelRecord):
            return self._records.get(label.label) == label
        return isinstance(label, str) and label in self._records

    def __iter__(self) -> Iterator[LabelRecord]:
        return iter(sorted(self._records.values(), key=lambda r: r.label))

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelSet):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"LabelSet({self.to_map()})"

    def to_map(self) -> dict[str, str]:
        return {record.label: record.value for record in self}

    def to_records(self) -> list[dict[str, str]]:
        return [record.to_raw() for record in self]

    def diff(self, desired: "LabelSet") -> LabelDiff:
        """What has to change to turn this set into ``desired``."""
        current = self.to_map()
        wanted = desired.to_map()
        return LabelDiff(
            added={k: v for k, v in wanted.items() if k not in current},
            removed={k: v for k, v in current.items() if k not in wanted},
            changed={
                k: (current[k], v)
                for k, v in wanted.items()
                if k in current and current[k] != v
            },
        )
