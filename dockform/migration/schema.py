"""Schema descriptors handed to migration steps.

A descriptor describes the shape of one historical schema version: which
attributes are lists of nested blocks, which are maps, which scalars are
integers. Steps receive their descriptor explicitly, so a step can be
exercised on its own without any resource registry.

Descriptors only need to cover the attributes a migration touches or has to
type; anything else in a state passes through untouched.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from ..models import ResourceKind


class AttrType(str, Enum):
    """Attribute value types."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    LIST = "list"
    SET = "set"
    MAP = "map"


@dataclass(frozen=True)
class Attr:
    """One attribute of a block.

    ``elem`` is the element type of a LIST/SET/MAP: either another Attr for
    scalars or a Block for nested blocks.
    """

    type: AttrType
    elem: "Attr | Block | None" = None
    required: bool = False

    @property
    def is_collection(self) -> bool:
        return self.type in (AttrType.LIST, AttrType.SET)

    @property
    def is_block_list(self) -> bool:
        return self.is_collection and isinstance(self.elem, Block)


@dataclass(frozen=True)
class Block:
    """A nested object: named attributes."""

    attributes: Mapping[str, Attr] = field(default_factory=dict)

    def get(self, name: str) -> Attr | None:
        return self.attributes.get(name)

    def nested(self, *names: str) -> "Block":
        """Follow a chain of block-list attributes: ``nested("task_spec", "container_spec")``."""
        block = self
        for name in names:
            attr = block.get(name)
            if attr is None or not attr.is_block_list:
                raise KeyError(f"no nested block '{name}'")
            block = attr.elem
        return block


@dataclass(frozen=True)
class SchemaDescriptor:
    """Shape of ``kind`` at ``version``.

    ``flat`` marks versions persisted as a flatmap rather than nested values.
    """

    kind: ResourceKind
    version: int
    block: Block
    flat: bool = False


def string(required: bool = False) -> Attr:
    return Attr(AttrType.STRING, required=required)


def integer() -> Attr:
    return Attr(AttrType.INT)


def boolean() -> Attr:
    return Attr(AttrType.BOOL)


def string_map() -> Attr:
    return Attr(AttrType.MAP, string())


def string_set() -> Attr:
    return Attr(AttrType.SET, string())


def blocks(block: Block, required: bool = False) -> Attr:
    """A list of nested blocks; single-item blocks are also persisted this way."""
    return Attr(AttrType.LIST, block, required=required)


def block_set(block: Block) -> Attr:
    return Attr(AttrType.SET, block)
