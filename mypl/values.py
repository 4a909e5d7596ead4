"""MyPL runtime values and the object heap.

Scalars are copied by value. A UDT instance lives in the Heap and is reached
through a VRef holding its Oid, so copying a VRef aliases the object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType


Oid = NewType("Oid", int)


# ============================================================
# Values
# ============================================================


@dataclass(frozen=True)
class Value:
    """A runtime value with a concrete type tag."""

    def type_name(self) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class VNil(Value):
    def type_name(self) -> str:
        return "nil"

    def to_string(self) -> str:
        return "nil"


@dataclass(frozen=True)
class VBool(Value):
    value: bool

    def type_name(self) -> str:
        return "bool"

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class VInt(Value):
    value: int

    def type_name(self) -> str:
        return "int"

    def to_string(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class VDouble(Value):
    value: float

    def type_name(self) -> str:
        return "double"

    def to_string(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class VChar(Value):
    value: str

    def type_name(self) -> str:
        return "char"

    def to_string(self) -> str:
        return self.value


@dataclass(frozen=True)
class VString(Value):
    value: str

    def type_name(self) -> str:
        return "string"

    def to_string(self) -> str:
        return self.value


@dataclass(frozen=True)
class VRef(Value):
    """Reference to a heap object; equality is identity of the oid."""

    oid: Oid
    udt: str

    def type_name(self) -> str:
        return self.udt

    def to_string(self) -> str:
        return self.udt + "@" + str(self.oid)


NIL: VNil = VNil()


# ============================================================
# Heap
# ============================================================


@dataclass
class HeapObject:
    """One allocated UDT instance: attribute name -> value."""

    udt: str
    attributes: dict[str, Value] = field(default_factory=dict)

    def has_att(self, name: str) -> bool:
        return name in self.attributes

    def get_val(self, name: str) -> Value:
        return self.attributes[name]

    def set_att(self, name: str, value: Value) -> None:
        self.attributes[name] = value


class Heap:
    """Grow-only arena of heap objects addressed by Oid.

    Entries are never reclaimed; every Oid handed out stays valid for the
    rest of the run.
    """

    def __init__(self) -> None:
        self._objects: list[HeapObject] = []

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, oid: object) -> bool:
        return isinstance(oid, int) and 0 <= oid < len(self._objects)

    def allocate(self, udt: str) -> Oid:
        self._objects.append(HeapObject(udt))
        return Oid(len(self._objects) - 1)

    def get_obj(self, oid: Oid) -> HeapObject:
        return self._objects[oid]
