"""
Flagmaker kinds: the closed set of leaf storage shapes and the reference cell.

Overview
- Kind
  • Closed enumeration of every storage shape a flag can be bound to: booleans,
    signed and unsigned integers of each width, both float widths, text,
    durations and homogeneous sequences of int/float/text.
  • A member's declared type (including named subclasses such as `class Port(int)`)
    is reduced to one Kind for adapter selection; the declared type is kept apart
    and restored on write-back.

- Width aliases
  • int8, int16, int32, int64, uint, uint8, uint16, uint32, uint64, float32, float64
    are `typing.Annotated` aliases carrying their Kind as metadata:
        level: int8 = 0
        port: Annotated[Port, Kind.UINT16] = Port(80)
  • Plain `int` is a 64-bit signed integer, plain `float` a 64-bit float.

- Ref[_T]
  • A mutable cell standing for one layer of reference indirection. A field
    annotated `Ref[Ref[list[float]]]` holding None is a nil chain of depth two;
    binding allocates every missing layer so the chain is always dereferenceable.

Quick example:
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Limits:
    ...     burst: uint16 = 10
    ...     weights: Ref[list[float]] | None = None
"""
import enum
from datetime import timedelta
from typing import Annotated, final


class Kind(enum.Enum):
    """
    Closed tagged union of leaf storage shapes.

    Attributes of each member
    - value: the short label shown in flag listings ("int8", "[]float64", ...).
    - scalar: the Python storage type of the shape (list for sequences).
    - element: for sequence kinds, the Kind of a single occurrence.
    """
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    DURATION = "duration"
    INT_LIST = "[]int"
    FLOAT_LIST = "[]float64"
    STRING_LIST = "[]string"

    @property
    def scalar(self):
        match self:
            case Kind.BOOL:
                return bool
            case Kind.FLOAT32 | Kind.FLOAT64:
                return float
            case Kind.STRING:
                return str
            case Kind.DURATION:
                return timedelta
            case Kind.INT_LIST | Kind.FLOAT_LIST | Kind.STRING_LIST:
                return list
            case _:
                return int

    @property
    def element(self):
        return {
            Kind.INT_LIST: Kind.INT,
            Kind.FLOAT_LIST: Kind.FLOAT64,
            Kind.STRING_LIST: Kind.STRING,
        }.get(self)

    @property
    def multiple(self):
        return self.element is not None

    def __repr__(self):
        return f"Kind.{self.name}"


@final
class Ref[_T]:
    """
    Mutable reference cell (one layer of indirection).

    - Ref(value) holds `value`; Ref() holds None (a nil inner layer).
    - Equality compares the referenced values, so two chains holding equal
      leaves compare equal regardless of identity.
    - Refs are unhashable, like the mutable containers they stand in for.
    """
    __slots__ = ("value",)

    def __init__(self, value=None, /):
        self.value = value

    def __eq__(self, other, /):
        if not isinstance(other, Ref):
            return NotImplemented
        return self.value == other.value

    __hash__ = None

    def __repr__(self):
        return f"Ref({self.value!r})"

    def __rich_repr__(self):
        yield self.value

    def __init_subclass__(cls, **options):
        raise TypeError("type 'Ref' is not an acceptable base type")


def deref(object, /):
    """
    Follow a chain of Ref cells down to the first non-Ref value (possibly None).
    """
    while isinstance(object, Ref):
        object = object.value
    return object


int8 = Annotated[int, Kind.INT8]
int16 = Annotated[int, Kind.INT16]
int32 = Annotated[int, Kind.INT32]
int64 = Annotated[int, Kind.INT64]
uint = Annotated[int, Kind.UINT]
uint8 = Annotated[int, Kind.UINT8]
uint16 = Annotated[int, Kind.UINT16]
uint32 = Annotated[int, Kind.UINT32]
uint64 = Annotated[int, Kind.UINT64]
float32 = Annotated[float, Kind.FLOAT32]
float64 = Annotated[float, Kind.FLOAT64]


__all__ = (
    # Types
    "Kind",
    "Ref",

    # Functions
    "deref",

    # Width aliases
    "int8",
    "int16",
    "int32",
    "int64",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "float32",
    "float64",
)
