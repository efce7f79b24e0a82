"""
Flagmaker faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by the stage that detects them (top level, binding, parsing)
  so logs and searches stay predictable.
- FlagException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased and actionable way.
- Concrete faults, one per failure of the override pipeline:
  • NilTopLevelError, NotAPointerError, InvalidTopLevelError (walker, before anything binds)
  • DuplicateFlagNameError (binder, before anything is allocated or parsed)
  • UnrecognizedFlagError, MalformedTokenError, MissingValueError, InvalidValueError (flag set)

Leftover contract
- Every fault raised by parse_args() carries the unconsumed tokens under the
  "leftover" option (exposed as `fault.leftover`), so callers can recover from an
  unrecognized flag by inspecting what was not consumed.

UX goals
- Position-first messages: parsing faults include the ordinal position of the
  offending token (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The library never prints; hosts render a caught fault with rich:
      console.print(fault)
- __codes__ and __prog__ in __main__ remap codes and the program name shown in headers.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across flagmaker (stable identifiers).

    grouping (by pipeline stage)
    - top level (211xx)
      • NIL_TOP_LEVEL, NOT_A_POINTER, INVALID_TOP_LEVEL
    - binding (221xx)
      • DUPLICATE_FLAG_NAME
    - parsing (231xx)
      • UNRECOGNIZED_FLAG, MALFORMED_TOKEN, MISSING_VALUE, INVALID_VALUE

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- top level errors (21xxx) ---
    NIL_TOP_LEVEL               = 21101
    NOT_A_POINTER               = 21102
    INVALID_TOP_LEVEL           = 21103

    # --- binding errors (22xxx) ---
    DUPLICATE_FLAG_NAME         = 22101

    # --- parsing errors (23xxx) ---
    UNRECOGNIZED_FLAG           = 23101
    MALFORMED_TOKEN             = 23102
    MISSING_VALUE               = 23103
    INVALID_VALUE               = 23104

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class FlagException(Exception):
    """
    base class of every flagmaker fault.

    options (all optional, read-only once built)
    - title: short headline used by the rich header.
    - code: FaultCode of the fault.
    - hint: one actionable sentence.
    - leftover: tokens that were not consumed when the fault was raised.
    - prog: program name for the header (falls back to __prog__ in __main__).
    - fancy: render inside a panel (default True).
    - colorful: apply the palette (default True).
    - any other context (name, token, index, suggestions, ...).
    """
    __defaults__ = MappingProxyType({
        "title": "flag error",
        "hint": "",
        "leftover": (),
        "fancy": True,
        "colorful": True,
    })

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(dict(type(self).__defaults__) | options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def leftover(self):
        """
        tokens left unconsumed when this fault was raised (fresh list per access).
        """
        return list(self.options["leftover"])

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if self.options["colorful"] else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self.options["colorful"]:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(self.options.get("prog", getattr(main, "__prog__", "flagmaker")), styler("prog-name"))
        code = self.code.normalize() if isinstance(self.code, FaultCode) else "-"

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code, styler("code")),
            " | ",
            text(self.options["title"].title(), styler("error-title")),
            " ]"
        )
        message = text(str(self), styler("error-message"))
        renders = [message]
        if self.options["hint"]:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.options["hint"], styler("hint"))))

        if self.options["fancy"]:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class TopLevelError(FlagException): ...
class NilTopLevelError(TopLevelError): ...
class NotAPointerError(TopLevelError): ...
class InvalidTopLevelError(TopLevelError): ...
class DuplicateFlagNameError(FlagException): ...
class UnrecognizedFlagError(FlagException): ...
class MalformedTokenError(FlagException): ...
class MissingValueError(FlagException): ...
class InvalidValueError(FlagException): ...


__all__ = (
    "FaultCode",
    "FlagException",
    "TopLevelError",
    "NilTopLevelError",
    "NotAPointerError",
    "InvalidTopLevelError",
    "DuplicateFlagNameError",
    "UnrecognizedFlagError",
    "MalformedTokenError",
    "MissingValueError",
    "InvalidValueError",
)
