r"""
Flagmaker value adapters: text ⇄ typed value for every leaf Kind.

Overview
- Adapters
  • BoolAdapter: "1 t T TRUE true True 0 f F FALSE false False"; presence-only on the command line.
  • IntegerAdapter: signed/unsigned, 8..64 bits; decimal, 0x/0o/0b prefixes, legacy
    leading-zero octal and digit-separating underscores.
  • FloatAdapter: 32 or 64 bits; float32 values are range-checked and rounded to single precision.
  • StringAdapter: identity.
  • DurationAdapter: "[-+]?(<decimal><unit>)+" with units ns, us, µs, μs, ms, s, m, h (or a bare "0"),
    stored as datetime.timedelta.
  • SequenceAdapter: one element per occurrence, with the reset-then-append accumulation rule.

- Registry
  • REGISTRY maps every Kind to exactly one adapter instance; lookup(kind) is the only
    entry point the binder uses. The table is closed: adding a shape means adding a Kind.

Contract
- parse(token) returns the typed value or raises ValueError with a short reason
  ("invalid syntax", "value out of range"). It never touches any bound location.
- format(value) returns the text shown as a flag's default ("" for a nil scalar).
- Adapters are stateless and shared; per-flag state lives in the binding.

Quick example:
    >>> lookup(Kind.INT8).parse("0x7f")
    127
    >>> lookup(Kind.DURATION).format(lookup(Kind.DURATION).parse("1h30m"))
    '1h30m0s'
"""
import functools
import math
import operator
import re
import struct
from datetime import timedelta
from fractions import Fraction
from types import MappingProxyType

from .kinds import Kind
from .utils import *


class AdapterType(type):
    """
    Metaclass giving adapters a readable identity.

    Responsibilities
    - __typename__ derived from the class name (camel-case split with hyphens).
    - Read-only properties for every name listed in __introspectable__.
    - Stable __repr__/__rich_repr__ built from those properties.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Adapter(metaclass=AdapterType):
    """
    Base adapter: binds one Kind to a parser and a formatter.

    Properties
    - kind: the Kind this adapter serves.
    - boolean: True when the flag toggles on bare presence (--name).
    - multiple: True when every occurrence contributes one element.
    """
    __introspectable__ = ("kind", "boolean", "multiple")

    def __init__(self, kind, /):
        if not isinstance(kind, Kind):
            raise TypeError(f"{type(self).__typename__} argument must be a kind")
        self._kind = kind
        self._boolean = kind is Kind.BOOL
        self._multiple = kind.multiple

    def parse(self, token, /):
        raise NotImplementedError

    def format(self, value, /):
        return "" if value is None else str(value)


class BoolAdapter(Adapter):
    _truths = frozenset(("1", "t", "T", "TRUE", "true", "True"))
    _falsehoods = frozenset(("0", "f", "F", "FALSE", "false", "False"))

    def parse(self, token, /):
        if token in self._truths:
            return True
        if token in self._falsehoods:
            return False
        raise ValueError("invalid syntax")

    def format(self, value, /):
        return "true" if value else "false"


_INTEGER = re.compile(
    r"(?P<sign>[+-]?)(?:"
    r"(?P<prefixed>0[xX](?:_?[0-9a-fA-F])+|0[oO](?:_?[0-7])+|0[bB](?:_?[01])+)"
    r"|0(?P<octal>(?:_?[0-7])+)"
    r"|(?P<decimal>[1-9](?:_?[0-9])*|0)"
    r")"
)


class IntegerAdapter(Adapter):
    """
    Fixed-width integer adapter.

    - signed widths accept an optional leading sign; unsigned widths reject any sign.
    - values outside [-2**(bits-1), 2**(bits-1)) or [0, 2**bits) raise "value out of range".
    """
    __introspectable__ = ("kind", "bits", "signed")

    def __init__(self, kind, /, bits, signed):
        super().__init__(kind)
        self._bits = bits
        self._signed = signed

    @property
    def bounds(self):
        if self._signed:
            return -(1 << (self._bits - 1)), (1 << (self._bits - 1)) - 1
        return 0, (1 << self._bits) - 1

    def parse(self, token, /):
        if not (match := _INTEGER.fullmatch(token)):
            raise ValueError("invalid syntax")
        if match["sign"] and not self._signed:
            raise ValueError("invalid syntax")

        if match["octal"]:
            value = int(match["octal"].replace("_", ""), 8)
        else:
            value = int(match["prefixed"] or match["decimal"], 0)
        if match["sign"] == "-":
            value = -value

        lower, upper = self.bounds
        if not lower <= value <= upper:
            raise ValueError("value out of range")
        return value


_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.ASCII | re.IGNORECASE,
)
_FLOAT32_MAX = 3.4028234663852886e38


def _single(value):
    """
    round a python float to the nearest single-precision value.
    """
    return struct.unpack("<f", struct.pack("<f", value))[0]


class FloatAdapter(Adapter):
    __introspectable__ = ("kind", "bits")

    def __init__(self, kind, /, bits):
        super().__init__(kind)
        self._bits = bits

    def parse(self, token, /):
        # float() also takes whitespace, underscores and non-ASCII digits
        if not _FLOAT.fullmatch(token):
            raise ValueError("invalid syntax")
        value = float(token)
        if self._bits == 32:
            if math.isfinite(value) and abs(value) > _FLOAT32_MAX:
                raise ValueError("value out of range")
            value = _single(value)
        return value

    def format(self, value, /):
        if value is None:
            return ""
        if self._bits == 32 and math.isfinite(value):
            # shortest text that still round-trips through single precision
            for precision in range(1, 10):
                if _single(float(text := "%.*g" % (precision, value))) == _single(value):
                    return text
        return repr(float(value))


class StringAdapter(Adapter):
    def parse(self, token, /):
        return token


_UNITS = MappingProxyType({
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek small letter mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
})
_SEGMENT = re.compile(r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION = re.compile(r"(?P<sign>[-+]?)(?P<body>(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:ns|us|µs|μs|ms|s|m|h))+)")
_DURATION_LIMIT = (1 << 63) - 1


def _fraction(number, scale, /):
    """
    render number/scale as a decimal without trailing zeros ("1.5", "10", "0.001").
    """
    whole, rest = divmod(number, scale)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(scale)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


class DurationAdapter(Adapter):
    """
    Duration adapter (nanosecond grammar, microsecond storage).

    Parsing
    - a signed sequence of decimal numbers, each with a unit suffix: "300ms", "-1.5h", "2h45m".
    - "0" (optionally signed) is the only unit-less literal.
    - totals beyond ±(2**63-1) nanoseconds are rejected.
    - fractions of a microsecond are truncated toward zero (timedelta resolution).

    Formatting
    - "0s" for zero; sub-second values use the largest of ns/µs/ms that keeps an
      integral part; longer values print as [h][m]s, e.g. "1h0m0s", "2m3.5s".
    """

    def parse(self, token, /):
        if token in ("0", "+0", "-0"):
            return timedelta(0)
        if not (match := _DURATION.fullmatch(token)):
            raise ValueError("invalid duration")

        total = Fraction(0)
        for number, unit in _SEGMENT.findall(match["body"]):
            if number.endswith("."):
                number += "0"
            if number.startswith("."):
                number = "0" + number
            total += Fraction(number) * _UNITS[unit]

        nanoseconds = int(total)
        if match["sign"] == "-":
            nanoseconds = -nanoseconds
        if not -_DURATION_LIMIT - 1 <= nanoseconds <= _DURATION_LIMIT:
            raise ValueError("invalid duration")
        return timedelta(microseconds=int(Fraction(nanoseconds, 1_000)))

    def format(self, value, /):
        if value is None:
            return ""
        nanoseconds = ((value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds) * 1_000
        if not nanoseconds:
            return "0s"

        sign = "-" if nanoseconds < 0 else ""
        nanoseconds = abs(nanoseconds)

        if nanoseconds < _UNITS["s"]:
            if nanoseconds < _UNITS["us"]:
                return f"{sign}{nanoseconds}ns"
            unit = "µs" if nanoseconds < _UNITS["ms"] else "ms"
            return sign + _fraction(nanoseconds, _UNITS[unit]) + unit

        hours, nanoseconds = divmod(nanoseconds, _UNITS["h"])
        minutes, nanoseconds = divmod(nanoseconds, _UNITS["m"])
        text = _fraction(nanoseconds, _UNITS["s"]) + "s"
        if hours or minutes:
            text = f"{minutes}m" + text
        if hours:
            text = f"{hours}h" + text
        return sign + text


class SequenceAdapter(Adapter):
    """
    Sequence adapter: every occurrence of the flag contributes one element.

    Accumulation rule (see accumulate())
    - the first successful occurrence discards the captured default and starts a
      new sequence holding only that element;
    - later successful occurrences append;
    - a failed occurrence changes nothing, so earlier commits stay in place.
    """
    __introspectable__ = ("kind", "element")

    def __init__(self, kind, /, element):
        super().__init__(kind)
        if not isinstance(element, Adapter) or element.multiple:
            raise TypeError(f"{type(self).__typename__} element must be a scalar adapter")
        self._element = element

    def parse(self, token, /):
        return self._element.parse(token)

    def accumulate(self, current, element, /, *, reset):
        """
        return the sequence to store after one successful occurrence.
        """
        if reset or current is None:
            return [element]
        return [*current, element]

    def format(self, value, /):
        if value is None:
            return "[]"
        return "[%s]" % ", ".join(map(self._element.format, value))


REGISTRY = {
    Kind.BOOL: BoolAdapter(Kind.BOOL),
    Kind.INT: IntegerAdapter(Kind.INT, bits=64, signed=True),
    Kind.INT8: IntegerAdapter(Kind.INT8, bits=8, signed=True),
    Kind.INT16: IntegerAdapter(Kind.INT16, bits=16, signed=True),
    Kind.INT32: IntegerAdapter(Kind.INT32, bits=32, signed=True),
    Kind.INT64: IntegerAdapter(Kind.INT64, bits=64, signed=True),
    Kind.UINT: IntegerAdapter(Kind.UINT, bits=64, signed=False),
    Kind.UINT8: IntegerAdapter(Kind.UINT8, bits=8, signed=False),
    Kind.UINT16: IntegerAdapter(Kind.UINT16, bits=16, signed=False),
    Kind.UINT32: IntegerAdapter(Kind.UINT32, bits=32, signed=False),
    Kind.UINT64: IntegerAdapter(Kind.UINT64, bits=64, signed=False),
    Kind.FLOAT32: FloatAdapter(Kind.FLOAT32, bits=32),
    Kind.FLOAT64: FloatAdapter(Kind.FLOAT64, bits=64),
    Kind.STRING: StringAdapter(Kind.STRING),
    Kind.DURATION: DurationAdapter(Kind.DURATION),
}
REGISTRY = MappingProxyType(REGISTRY | {
    Kind.INT_LIST: SequenceAdapter(Kind.INT_LIST, element=REGISTRY[Kind.INT]),
    Kind.FLOAT_LIST: SequenceAdapter(Kind.FLOAT_LIST, element=REGISTRY[Kind.FLOAT64]),
    Kind.STRING_LIST: SequenceAdapter(Kind.STRING_LIST, element=REGISTRY[Kind.STRING]),
})


def lookup(kind, /):
    """
    return the shared adapter registered for a Kind.
    """
    if not isinstance(kind, Kind):
        raise TypeError("lookup() argument must be a kind")
    return REGISTRY[kind]


__all__ = (
    # Classes
    "Adapter",
    "BoolAdapter",
    "IntegerAdapter",
    "FloatAdapter",
    "StringAdapter",
    "DurationAdapter",
    "SequenceAdapter",

    # Registry
    "REGISTRY",
    "lookup",
)

# Keep the metaclass out of star-imports and autocompletion.
del AdapterType
