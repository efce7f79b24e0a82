"""
Flagmaker flag set: an ordered registry of bindings and the token parser.

Scope
- FlagSet holds every Binding produced for one invocation, keyed by flag name, in
  walk order. It is created per call and never shared.
- parse(tokens) consumes argv-like tokens and routes each value to its binding.

Token grammar
- "-name" and "--name" are equivalent; "-name=value" / "--name=value" carry an
  inline value, otherwise value-taking flags consume the next token.
- boolean flags never consume the next token: "--verbose" sets true and
  "--verbose=false" is the only way to pass an explicit value.
- the first token that is not a flag, or a lone "-", stops parsing; it and
  everything after it are returned untouched.
- "--" is consumed and stops parsing; everything after it is returned.

Faults (each carries the unconsumed tokens as `leftover`)
- UnrecognizedFlagError: the flag is not defined (leftover starts with that token).
- MalformedTokenError: "-=x", "---x" and other bad spellings (leftover starts with that token).
- MissingValueError: a value-taking flag is the last token (leftover is empty).
- InvalidValueError: the adapter rejected the value (leftover is everything after it).

Bindings that already accepted a value keep it when a later token fails.
"""
import difflib
import re
from collections import defaultdict, deque

from rich.box import ROUNDED
from rich.table import Table
from rich.text import Text

from .faults import *
from .utils import *

_TOKEN = re.compile(r"(?P<dashes>--?)(?P<name>[^-=][^=]*)(?:=(?P<value>.*))?", re.DOTALL)


class FlagSet:
    """
    Ordered collection of flag bindings.

    Properties
    - name: program name used in fault headers (None when not provided).
    - visited: names of the flags set by the last parse(), in order of first occurrence.

    Mapping-like access
    - len(flags), iter(flags) (names in walk order), "name" in flags, flags["name"].
    """
    __introspectable__ = ("name", "visited")

    name = mirror("name")
    visited = mirror("visited")

    def __init__(self, name=Unset, /):
        if not isinstance(name, str | UnsetType | None):
            raise TypeError("flag set name must be a string")
        self._name = coalesce(name)
        self._bindings = {}
        self._visited = []

    def add(self, binding, /):
        """
        register a binding under its flag name.

        raises DuplicateFlagNameError when the name is already registered.
        """
        if binding.name in self._bindings:
            raise DuplicateFlagNameError(
                "flag redefined: %s" % binding.name,
                title="duplicate flag name",
                code=FaultCode.DUPLICATE_FLAG_NAME,
                hint="rename one of the members with a naming tag, or disable flattening",
                name=binding.name,
                **self._context(),
            )
        self._bindings[binding.name] = binding
        return binding

    def lookup(self, name, /):
        """
        return the binding registered under name, or None.
        """
        return self._bindings.get(name)

    def __contains__(self, name, /):
        return name in self._bindings

    def __getitem__(self, name, /):
        return self._bindings[name]

    def __iter__(self):
        return iter(self._bindings)

    def __len__(self):
        return len(self._bindings)

    def __repr__(self):
        return "flagset(name=%r, flags=%r)" % (self._name, list(self._bindings))

    def _context(self):
        return {} if self._name is None else {"prog": self._name}

    def _resolve_token(self, token, index, tokens, /):
        """
        split one flag token into (binding, inline value or None).

        raises MalformedTokenError or UnrecognizedFlagError; in both cases the
        token itself is put back in front of the leftover.
        """
        if not (match := _TOKEN.fullmatch(token)):
            raise MalformedTokenError(
                "bad flag syntax %r at %s position" % (token, ordinal(index)),
                title="malformed flag",
                code=FaultCode.MALFORMED_TOKEN,
                hint="spell flags as -name, --name, -name=value or --name=value",
                token=token,
                index=index,
                leftover=(token, *tokens),
                **self._context(),
            )

        name = match["name"]
        if (binding := self.lookup(name)) is None:
            suggestions = difflib.get_close_matches(name, self._bindings.keys(), 5)
            try:
                hint = "did you mean %r?" % suggestions[0]
            except IndexError:
                hint = "no flag with this name is defined"
            raise UnrecognizedFlagError(
                "flag provided but not defined: %s%s at %s position" % (match["dashes"], name, ordinal(index)),
                title="unrecognized flag",
                code=FaultCode.UNRECOGNIZED_FLAG,
                hint=hint,
                name=name,
                token=token,
                index=index,
                suggestions=suggestions,
                leftover=(token, *tokens),
                **self._context(),
            )
        return binding, match["value"]

    def parse(self, tokens, /):
        """
        consume flag tokens and store their values.

        parameters
        - tokens: iterable of argument strings (the program name excluded).

        returns
        - list[str]: the tokens left after parsing stopped at the first non-flag
          token, a lone "-", "--" (not included) or the end of input.

        raises
        - the faults listed in the module documentation.
        """
        tokens = deque(tokens)
        self._visited.clear()
        for binding in self._bindings.values():
            binding.reset()

        index = 0
        while tokens:
            token = tokens[0]
            if len(token) < 2 or not token.startswith("-"):
                break

            tokens.popleft()
            index += 1
            if token == "--":
                break

            binding, value = self._resolve_token(token, index, tokens)
            position = index

            if value is None:
                if binding.boolean:
                    value = "true"
                elif tokens:
                    value = tokens.popleft()
                    index += 1
                else:
                    raise MissingValueError(
                        "flag needs an argument: %s at %s position" % (token, ordinal(position)),
                        title="missing value",
                        code=FaultCode.MISSING_VALUE,
                        hint="pass a value after a space or with '=' (for example: %s=<value>)" % token,
                        name=binding.name,
                        index=position,
                        leftover=(),
                        **self._context(),
                    )

            try:
                binding.set(value)
            except ValueError as error:
                raise InvalidValueError(
                    "invalid value %r for flag %r at %s position: %s" % (value, binding.name, ordinal(position), error),
                    title="invalid value",
                    code=FaultCode.INVALID_VALUE,
                    hint="expected a %s value" % binding.kind.value,
                    name=binding.name,
                    value=value,
                    index=position,
                    leftover=tuple(tokens),
                    **self._context(),
                ) from error

            if binding.name not in self._visited:
                self._visited.append(binding.name)

        return list(tokens)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "flags-title": "bold #FF4DA6",
            "flags-table": "#5A5A6E",
            "flag-name": "bold #00E5FF",
            "flag-kind": "#9CE19C",
            "flag-default": "#C8C8D0",
        } | getattr(main, "__styles__", {}))

        table = Table(
            "flag", "kind", "default",
            title=Text(self._name or "flags", styles["flags-title"]),
            box=ROUNDED,
            style=styles["flags-table"],
            header_style=styles["flags-title"],
        )
        for name, binding in self._bindings.items():
            table.add_row(
                Text("-" + name, styles["flag-name"]),
                Text(binding.kind.value, styles["flag-kind"]),
                Text(binding.default, styles["flag-default"]),
            )
        return table


__all__ = (
    "FlagSet",
)
