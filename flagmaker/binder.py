"""
Flagmaker binder: turn walked leaves into flag bindings over live storage.

Overview
- Location, AttributeLocation, ReferenceLocation
  • A location is a writable slot: an attribute of a structure instance, or the
    value of a Ref cell. get() reads the slot and set(value) writes it.

- resolve(location, layers)
  • Step through a leaf's indirection layers, allocating every nil layer on the
    way (a None Ref slot gets a fresh Ref holding the zero value of its inner
    type; a None Optional slot gets the zero value itself). The returned location
    is the real storage.

- Binding
  • One flag: name, adapter, real storage and the declared type restored on
    write-back. The default shown in listings is the storage's value at bind time.
  • set(token) parses with the adapter and stores; sequence flags reset on their
    first successful occurrence and append afterwards. reset() starts over,
    and FlagSet.parse() calls it on every binding before reading any token.

- Binder
  • Walks the schema tree in order and registers one binding per exported leaf.
  • Every name is checked for duplicates before anything is allocated, so a
    colliding configuration is left exactly as it was.

Allocation happens at bind time, not at parse time: after parse_args() returns,
every reference chain in front of a bound leaf is non-nil, whether or not its
flag appeared on the command line.
"""
from datetime import timedelta

from .adapters import lookup
from .faults import *
from .flagset import FlagSet
from .kinds import Ref
from .utils import *
from .walker import Indirection, NodeKind, zero


class Location:
    """
    A writable storage slot.
    """

    def get(self):
        raise NotImplementedError

    def set(self, value, /):
        raise NotImplementedError


class AttributeLocation(Location):
    __slots__ = ("owner", "attribute")

    def __init__(self, owner, attribute, /):
        self.owner = owner
        self.attribute = attribute

    def get(self):
        return getattr(self.owner, self.attribute)

    def set(self, value, /):
        setattr(self.owner, self.attribute, value)

    def __repr__(self):
        return f"AttributeLocation({type(self.owner).__qualname__}.{self.attribute})"


class ReferenceLocation(Location):
    __slots__ = ("ref",)

    def __init__(self, ref, /):
        self.ref = ref

    def get(self):
        return self.ref.value

    def set(self, value, /):
        self.ref.value = value

    def __repr__(self):
        return f"ReferenceLocation({self.ref!r})"


def resolve(location, layers, /):
    """
    walk a slot through its indirection layers, allocating nil layers.

    returns the location of the real storage.
    """
    for layer in layers:
        current = location.get()
        match layer.indirection:
            case Indirection.REFERENCE:
                if current is None:
                    location.set(current := Ref(zero(layer.inner)))
                location = ReferenceLocation(current)
            case Indirection.OPTIONAL:
                if current is None:
                    location.set(zero(layer.inner))
    return location


def _convert(constructor, value, /):
    """
    restore the declared type of a parsed value (`class Port(int)`, list subclasses, ...).
    """
    if constructor is None or type(value) is constructor:
        return value
    if issubclass(constructor, timedelta):
        return constructor(days=value.days, seconds=value.seconds, microseconds=value.microseconds)
    return constructor(value)


class Binding:
    """
    One flag bound to its storage.

    Properties
    - name: flag name ("server.readtimeout", or "readtimeout" when flattened).
    - kind: the leaf Kind.
    - adapter: the shared adapter of that kind.
    - location: the real storage.
    - default: text of the value the storage held at bind time.
    - boolean: True when the flag toggles on bare presence.
    """
    __introspectable__ = ("name", "kind", "adapter", "location")

    name = mirror("name")
    kind = mirror("kind")
    adapter = mirror("adapter")
    location = mirror("location")

    def __init__(self, name, kind, location, /, *, constructor=None, element=None):
        self._name = name
        self._kind = kind
        self._adapter = lookup(kind)
        self._location = location
        self._constructor = constructor
        self._element = element
        self._default = self._adapter.format(location.get())
        self._committed = False

    @property
    def default(self):
        return self._default

    @property
    def boolean(self):
        return self._adapter.boolean

    def get(self):
        return self._location.get()

    def reset(self):
        """
        forget earlier occurrences so the next set() starts a new sequence.
        """
        self._committed = False

    def set(self, token, /):
        """
        parse token and store it; raises ValueError and stores nothing when the
        adapter rejects it.
        """
        value = self._adapter.parse(token)
        if self._adapter.multiple:
            value = self._adapter.accumulate(
                self._location.get(),
                _convert(self._element, value),
                reset=not self._committed,
            )
        self._location.set(_convert(self._constructor, value))
        self._committed = True

    def __repr__(self):
        return "binding(name=%r, kind=%r, default=%r)" % (self._name, self._kind, self._default)

    def __rich_repr__(self):
        yield "name", self._name
        yield "kind", self._kind
        yield "default", self._default


class Binder:
    """
    Register one binding per exported leaf of a schema tree.

    parameters
    - flatten: name flags by their own segment instead of the dotted path.
    """
    __introspectable__ = ("flatten",)

    flatten = mirror("flatten")

    def __init__(self, *, flatten=False):
        if not isinstance(flatten, bool):
            raise TypeError("binder flatten must be a boolean")
        self._flatten = flatten

    def names(self, root, /):
        """
        return the ordered flag names of a schema tree.
        """
        return [leaf.name(flatten=self._flatten) for leaf in root.leaves()]

    def bind(self, root, flagset=Unset, /):
        """
        bind every exported leaf below root into flagset (a new FlagSet by default).

        raises DuplicateFlagNameError before touching the configuration when two
        leaves, or a leaf and an already registered flag, share a name.
        """
        if flagset is Unset:
            flagset = FlagSet()

        seen = set(flagset)
        for name in self.names(root):
            if name in seen:
                raise DuplicateFlagNameError(
                    "flag redefined: %s" % name,
                    title="duplicate flag name",
                    code=FaultCode.DUPLICATE_FLAG_NAME,
                    hint=(
                        "give one of the members a different name with a naming tag"
                        if not self._flatten else
                        "give one of the members a different name with a naming tag, or stop flattening"
                    ),
                    name=name,
                    **({} if flagset.name is None else {"prog": flagset.name}),
                )
            seen.add(name)

        self._bind(root, root.value, flagset)
        return flagset

    def _bind(self, node, instance, flagset, /):
        for child in node.children:
            if not child.exported or child.kind is NodeKind.UNSUPPORTED:
                continue

            location = resolve(AttributeLocation(instance, child.attribute), child.layers)

            if child.kind is NodeKind.LEAF:
                flagset.add(Binding(
                    child.name(flatten=self._flatten),
                    child.leaf,
                    location,
                    constructor=child.constructor,
                    element=child.element,
                ))
            else:
                self._bind(child, location.get(), flagset)


def bind(root, flagset=Unset, /, *, flatten=False):
    """
    shorthand for Binder(flatten=flatten).bind(root, flagset).
    """
    return Binder(flatten=flatten).bind(root, flagset)


__all__ = (
    # Locations
    "Location",
    "AttributeLocation",
    "ReferenceLocation",

    # Binding
    "Binding",
    "Binder",

    # Functions
    "resolve",
    "bind",
)
