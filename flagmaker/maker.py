"""
Flagmaker driver: override a configuration structure from command-line tokens.

Pipeline (one call, no state kept between calls)
    target ── walk() ──▶ schema tree ── Binder.bind() ──▶ FlagSet ── parse() ──▶ leftover

- walk() validates the top-level object and derives the namespace from the shape.
- Binder.bind() checks the names, allocates nil reference layers and registers
  one binding per exported leaf.
- FlagSet.parse() consumes tokens and writes parsed values in place.

The configuration is mutated in place; unset flags leave their members untouched,
so calling parse_args() again with no tokens is a no-op.

Quick example:
    >>> from dataclasses import dataclass, field
    >>> from datetime import timedelta
    >>> @dataclass
    ... class Server:
    ...     read_timeout: timedelta = field(default=timedelta(seconds=5), metadata={"yaml": "readtimeout"})
    >>> @dataclass
    ... class Config:
    ...     server: Server = field(default_factory=Server)
    >>> config = Config()
    >>> parse_args(config, ["--server.readtimeout", "1h", "rest"])
    ['rest']
    >>> config.server.read_timeout
    datetime.timedelta(seconds=3600)
"""
import copy
import shlex
import sys

from .binder import Binder
from .faults import *
from .flagset import FlagSet
from .utils import *
from .walker import walk


class FlagMaker:
    """
    Configured override driver.

    parameters (keyword-only)
    - flatten: bool
      name flags by their own segment ("readtimeout") instead of the dotted path
      ("server.readtimeout"). Collisions become DuplicateFlagNameError.
    - tag: str
      dataclasses metadata key holding name overrides (default "yaml").
    - name: str
      program name shown in fault headers and flag listings.
    """
    __introspectable__ = ("flatten", "tag", "name")

    flatten = mirror("flatten")
    tag = mirror("tag")
    name = mirror("name")

    def __init__(self, *, flatten=False, tag=Unset, name=Unset):
        if not isinstance(flatten, bool):
            raise TypeError("flag maker flatten must be a boolean")
        if not isinstance(tag, str | UnsetType):
            raise TypeError("flag maker tag must be a string")
        if isinstance(tag, str) and (not tag or tag != tag.strip()):
            raise ValueError("flag maker tag must be a non-empty string without surrounding whitespace")
        if not isinstance(name, str | UnsetType):
            raise TypeError("flag maker name must be a string")

        self._flatten = flatten
        self._tag = coalesce(tag, "yaml")
        self._name = coalesce(name)

    def __repr__(self):
        return "flagmaker(flatten=%r, tag=%r, name=%r)" % (self._flatten, self._tag, self._name)

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def define(self, target, /):
        """
        walk target and bind its flags without parsing anything.

        the returned FlagSet lists every flag (useful for help output); binding
        allocates nil reference layers in front of bound leaves.
        """
        root = walk(target, tag=self._tag)
        return Binder(flatten=self._flatten).bind(root, FlagSet(self._name))

    def parse_args(self, target, args=Unset, /):
        """
        override target's members from args.

        parameters
        - target: mutable dataclass instance (or a Ref chain pointing at one).
        - args: iterable of tokens, a single shell-like string split with shlex,
          or Unset to read sys.argv[1:].

        returns
        - list[str]: tokens left unconsumed.

        raises
        - any FlagException; fault.leftover holds the tokens not consumed (every
          token when the failure happened before parsing started).
        """
        match args:
            case UnsetType():
                tokens = sys.argv[1:]
            case str():
                tokens = shlex.split(args)
            case _:
                tokens = list(args)
                if not all(isinstance(token, str) for token in tokens):
                    raise TypeError("parse_args() tokens must be strings")

        try:
            flagset = self.define(target)
        except FlagException as fault:
            raise copy.replace(fault, leftover=tuple(tokens), **self._context(fault)) from None

        return flagset.parse(tokens)

    def _context(self, fault, /):
        return {} if self._name is None or "prog" in fault.options else {"prog": self._name}


def parse_args(target, args=Unset, /, **options):
    """
    override target's members from args in one call.

    shorthand for FlagMaker(**options).parse_args(target, args); options are
    flatten, tag and name.
    """
    return FlagMaker(**options).parse_args(target, args)


__all__ = (
    "FlagMaker",
    "parse_args",
)
