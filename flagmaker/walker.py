"""
Flagmaker schema walker: derive the flag namespace from a structure's shape.

What this module provides
- walk(target, tag="yaml"): validate the top-level object and build the root Node.
- Node: one member of the walked structure (structure, leaf or unsupported),
  carrying its name segment, its path from the root, its indirection layers and,
  for leaves, the Kind used to pick an adapter.
- Layer / Indirection: one level of reference indirection between a member's slot
  and its real storage (a Ref cell, or an Optional slot storing the value directly).
- zero(annotation): the freshly allocated value of a type, used by the binder to
  fill nil layers.

Classification rules
- structures are mutable dataclass instances; members are read in declaration
  order and their annotations resolved with typing.get_type_hints(include_extras=True).
- a member whose type, after any number of Ref/Optional layers, is a mutable
  dataclass is a structure node and is walked recursively.
- a member whose type reduces to one Kind (bool, int, float, str, timedelta, their
  subclasses and NewTypes, Annotated widths, list[int]/list[float]/list[str]) is a leaf.
- members annotated Any, object, a Protocol or an abstract class are interface
  members: their runtime value decides (a mutable dataclass is walked, anything else
  is unsupported).
- everything else is unsupported and silently left out of the namespace.
- members whose name starts with an underscore are not exported and never bind.

Naming
- a node's segment is its attribute name lower-cased, unless the member's
  dataclasses metadata carries a naming tag (default key "yaml"); the tag value up
  to the first comma replaces the segment for that member only.
- walking order is depth-first, pre-order, so two walks of the same shape always
  produce the same ordered names.

Top level
- None, or a Ref chain ending in None          → NilTopLevelError
- a Ref chain ending in a non-mutable object   → InvalidTopLevelError
- anything else that is not a mutable structure → NotAPointerError
"""
import dataclasses
import enum
import inspect
import types
import typing
from datetime import timedelta
from typing import Annotated, Any, NewType, Union, get_args, get_origin

from .faults import *
from .kinds import Kind, Ref, deref
from .utils import *


class NodeKind(enum.Enum):
    STRUCTURE = "structure"
    LEAF = "leaf"
    UNSUPPORTED = "unsupported"


class Indirection(enum.Enum):
    REFERENCE = "reference"  # slot holds None or a Ref cell
    OPTIONAL = "optional"  # slot holds None or the value itself


class Layer:
    """
    One indirection layer: how to step from a slot to the next one, and which
    type to allocate when the slot is nil.
    """
    __slots__ = ("indirection", "inner")

    def __init__(self, indirection, inner, /):
        self.indirection = indirection
        self.inner = inner

    def __eq__(self, other, /):
        if not isinstance(other, Layer):
            return NotImplemented
        return (self.indirection, self.inner) == (other.indirection, other.inner)

    __hash__ = None

    def __repr__(self):
        return f"Layer({self.indirection.value}, {self.inner!r})"


class Node:
    """
    One member of a walked structure.

    Properties
    - segment: flag-name segment of this member ("" for the root).
    - attribute: Python attribute name holding the member (None for the root).
    - kind: NodeKind.STRUCTURE | LEAF | UNSUPPORTED.
    - exported: False for members whose name starts with an underscore.
    - layers: indirection layers in front of the real storage; len(layers) is
      the indirection depth.
    - path: segments from the root down to this member.
    - leaf: the Kind of a leaf (None otherwise).
    - constructor: declared type restored on write-back (leaves only).
    - element: declared element type of a sequence leaf.
    - structure: dataclass type of a structure node.
    - value: runtime value observed through the layers during the walk (None when nil).
    - children: child nodes of a structure, in declaration order.
    """
    __introspectable__ = (
        "segment",
        "attribute",
        "kind",
        "exported",
        "layers",
        "path",
        "leaf",
        "constructor",
        "element",
        "structure",
        "value",
        "children",
    )
    __displayable__ = ("segment", "kind", "leaf", "layers", "children")

    segment = mirror("segment")
    attribute = mirror("attribute")
    kind = mirror("kind")
    exported = mirror("exported")
    layers = mirror("layers")
    path = mirror("path")
    leaf = mirror("leaf")
    constructor = mirror("constructor")
    element = mirror("element")
    structure = mirror("structure")
    value = mirror("value")
    children = mirror("children")

    def __init__(
            self,
            segment,
            attribute,
            kind,
            /,
            *,
            exported=True,
            layers=(),
            path=(),
            leaf=None,
            constructor=None,
            element=None,
            structure=None,
            value=None,
            children=(),
    ):
        self._segment = segment
        self._attribute = attribute
        self._kind = kind
        self._exported = exported
        self._layers = tuple(layers)
        self._path = tuple(path)
        self._leaf = leaf
        self._constructor = constructor
        self._element = element
        self._structure = structure
        self._value = value
        self._children = tuple(children)

    @property
    def depth(self):
        return len(self._layers)

    def name(self, *, flatten=False):
        """
        flag name of this node: the dotted path, or the bare segment when flattened.
        """
        return self._segment if flatten else ".".join(self._path)

    def leaves(self):
        """
        yield every exported leaf below this node (depth-first, pre-order).
        """
        for child in self._children:
            if not child._exported:
                continue
            if child._kind is NodeKind.LEAF:
                yield child
            elif child._kind is NodeKind.STRUCTURE:
                yield from child.leaves()

    def __repr__(self):
        return "node(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        for name in type(self).__displayable__:
            yield name, getattr(self, "_" + name)


def _mutable(object, /):
    """
    True for dataclass instances that can be written in place.
    """
    return (
        dataclasses.is_dataclass(object)
        and not isinstance(object, type)
        and not type(object).__dataclass_params__.frozen
    )


def _dynamic(annotation, /):
    """
    True for interface-like annotations whose shape comes from the runtime value.
    """
    if annotation is Any or annotation is object:
        return True
    if not isinstance(annotation, type):
        return False
    return bool(getattr(annotation, "_is_protocol", False)) or inspect.isabstract(annotation)


def _hints(structure, /):
    try:
        return typing.get_type_hints(structure, include_extras=True)
    except NameError as error:
        raise TypeError(f"cannot resolve the annotations of {structure.__qualname__!r}: {error}") from error


def _strip(annotation, /):
    """
    remove Annotated/NewType wrappers; return (annotation, kind hint or None).
    """
    hint = None
    while True:
        if get_origin(annotation) is Annotated:
            for metadata in annotation.__metadata__:
                if isinstance(metadata, Kind):
                    hint = metadata
            annotation = annotation.__origin__
        elif isinstance(annotation, NewType):
            annotation = annotation.__supertype__
        else:
            return annotation, hint


def _optional(annotation, /):
    """
    return the single non-None member of an Optional annotation, or Unset.
    """
    if get_origin(annotation) not in (Union, types.UnionType):
        return Unset
    members = [member for member in get_args(annotation) if member is not types.NoneType]
    if len(members) != 1 or len(members) == len(get_args(annotation)):
        return Unset
    return members[0]


def _unwrap(annotation, /):
    """
    peel indirection off an annotation.

    returns (layers, annotation, hint) where annotation is the stripped real type
    and hint the Kind carried by Annotated metadata at that level, if any.
    """
    layers = []
    while True:
        annotation, hint = _strip(annotation)
        if (inner := _optional(annotation)) is not Unset:
            # Optional[Ref[T]] is one layer: a Ref slot is already nil-able
            if get_origin(_strip(inner)[0]) is not Ref:
                layers.append(Layer(Indirection.OPTIONAL, inner))
            annotation = inner
        elif get_origin(annotation) is Ref:
            annotation, = get_args(annotation)
            layers.append(Layer(Indirection.REFERENCE, annotation))
        else:
            return tuple(layers), annotation, hint


_SCALARS = (
    (bool, Kind.BOOL),
    (int, Kind.INT),
    (float, Kind.FLOAT64),
    (str, Kind.STRING),
    (timedelta, Kind.DURATION),
)
_SEQUENCES = {
    Kind.INT: Kind.INT_LIST,
    Kind.FLOAT64: Kind.FLOAT_LIST,
    Kind.STRING: Kind.STRING_LIST,
}


def _scalar(annotation, hint, /):
    """
    reduce a scalar annotation to its Kind, honoring a compatible width hint.
    """
    if not isinstance(annotation, type) or issubclass(annotation, enum.Enum):
        return None
    for base, kind in _SCALARS:
        if issubclass(annotation, base):
            break
    else:
        return None
    if hint is None:
        return kind
    if hint.multiple or hint.scalar is not kind.scalar:
        raise TypeError(f"kind {hint.value!r} cannot describe {annotation.__qualname__!r}")
    return hint


def _sequence(annotation, /):
    """
    return (list type, element annotation) for list[...] annotations and list
    subclasses declared as `class Hosts(list[str])`, else None.
    """
    origin = get_origin(annotation)
    if isinstance(origin, type) and issubclass(origin, list):
        arguments = get_args(annotation)
        return (origin, arguments[0]) if len(arguments) == 1 else None
    if isinstance(annotation, type) and issubclass(annotation, list):
        for base in types.get_original_bases(annotation):
            if isinstance(get_origin(base), type) and issubclass(get_origin(base), list) and len(get_args(base)) == 1:
                return annotation, get_args(base)[0]
    return None


def _classify(annotation, hint, /):
    """
    classify a stripped annotation.

    returns (NodeKind | "dynamic", details) where details carries leaf, constructor,
    element or structure as applicable.
    """
    if (sequence := _sequence(annotation)) is not None:
        container, element = sequence
        element, element_hint = _strip(element)
        kind = _SEQUENCES.get(_scalar(element, element_hint))
        if kind is None:
            return NodeKind.UNSUPPORTED, {}
        if hint is not None and hint is not kind:
            raise TypeError(f"kind {hint.value!r} cannot describe a sequence of {element.__qualname__!r}")
        return NodeKind.LEAF, {"leaf": kind, "constructor": container, "element": element}

    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        if annotation.__dataclass_params__.frozen:
            return NodeKind.UNSUPPORTED, {}
        return NodeKind.STRUCTURE, {"structure": annotation}

    if (kind := _scalar(annotation, hint)) is not None:
        return NodeKind.LEAF, {"leaf": kind, "constructor": annotation}

    if _dynamic(annotation):
        return "dynamic", {}

    return NodeKind.UNSUPPORTED, {}


def _segment(field, tag, /):
    label = field.metadata.get(tag) if tag else None
    if isinstance(label, str) and (label := label.split(",", 1)[0].strip()):
        return label
    return field.name.lower()


def _member(field, annotation, owner, path, tag, ancestors, /):
    """
    build the Node of one dataclass field.
    """
    segment = _segment(field, tag)
    path = (*path, segment)
    exported = not field.name.startswith("_")
    unsupported = Node(segment, field.name, NodeKind.UNSUPPORTED, exported=exported, path=path)

    layers, annotation, hint = _unwrap(annotation)

    # follow the live value through the layers without allocating anything
    value = getattr(owner, field.name, None) if owner is not None else None
    for layer in layers:
        if value is None:
            break
        if layer.indirection is Indirection.REFERENCE:
            if not isinstance(value, Ref):
                return unsupported
            value = value.value

    kind, details = _classify(annotation, hint)

    if kind == "dynamic":
        extra = []
        while isinstance(value, Ref):
            extra.append(Layer(Indirection.REFERENCE, Any))
            value = value.value
        if not _mutable(value):
            return unsupported
        layers += tuple(extra)
        kind, details = NodeKind.STRUCTURE, {"structure": type(value)}

    if kind is NodeKind.UNSUPPORTED:
        return unsupported

    if kind is NodeKind.LEAF:
        return Node(segment, field.name, kind, exported=exported, layers=layers, path=path, value=value, **details)

    structure = details["structure"]
    if value is not None:
        if not _mutable(value):
            return unsupported
        structure = type(value)

    # a nil member whose type is already being walked would allocate forever
    if any((value if value is not None else structure) is other for other in ancestors):
        return unsupported

    children = _children(structure, value, path, tag, (*ancestors, structure, value)) if exported else ()
    return Node(
        segment,
        field.name,
        kind,
        exported=exported,
        layers=layers,
        path=path,
        structure=structure,
        value=value,
        children=children,
    )


def _children(structure, value, path, tag, ancestors, /):
    hints = _hints(structure)
    return tuple(
        _member(field, hints.get(field.name, field.type), value, path, tag, ancestors)
        for field in dataclasses.fields(structure)
    )


def _top_level(target, /):
    """
    validate the object handed to the driver and return the structure to walk.
    """
    if target is None:
        raise NilTopLevelError(
            "top level object cannot be nil",
            title="nil top level",
            code=FaultCode.NIL_TOP_LEVEL,
            hint="pass the configuration instance itself (for example: parse_args(config, args))",
        )

    if isinstance(target, Ref):
        if (instance := deref(target)) is None:
            raise NilTopLevelError(
                "top level object cannot be nil",
                title="nil top level",
                code=FaultCode.NIL_TOP_LEVEL,
                hint="point the reference at a configuration instance before parsing",
            )
        if not _mutable(instance):
            raise InvalidTopLevelError(
                "interface must have pointer underlying type, got %s" % type(instance).__qualname__,
                title="invalid top level",
                code=FaultCode.INVALID_TOP_LEVEL,
                hint="reference a mutable dataclass instance (frozen dataclasses cannot be written in place)",
            )
        return instance

    if not _mutable(target):
        raise NotAPointerError(
            "top level object must be a pointer, got %s" % (
                "type %s" % target.__qualname__ if isinstance(target, type) else type(target).__qualname__
            ),
            title="not a pointer",
            code=FaultCode.NOT_A_POINTER,
            hint="pass a mutable dataclass instance so it can be updated in place",
        )
    return target


def walk(target, /, *, tag=Unset):
    """
    validate the top-level object and build its schema tree.

    parameters
    - target: a mutable dataclass instance, or a Ref chain pointing at one.
    - tag: dataclasses metadata key holding per-member name overrides
      (default "yaml"; a falsy tag disables overrides).

    returns
    - the root Node (kind STRUCTURE, empty segment, value set to the instance).

    raises
    - NilTopLevelError, NotAPointerError, InvalidTopLevelError as described in
      the module documentation; nothing is modified in any case.
    """
    tag = coalesce(tag, "yaml")
    instance = _top_level(target)
    structure = type(instance)
    return Node(
        "",
        None,
        NodeKind.STRUCTURE,
        structure=structure,
        value=instance,
        children=_children(structure, instance, (), tag, (structure, instance)),
    )


def _build(structure, /):
    """
    instantiate a dataclass using its defaults and zero values for required fields.
    """
    hints = _hints(structure)
    return structure(**{
        field.name: zero(hints.get(field.name, field.type))
        for field in dataclasses.fields(structure)
        if field.init and field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING
    })


def zero(annotation, /):
    """
    return a freshly allocated zero value for an annotation.

    - nil-able annotations (Optional, Ref, Any, unknown types) → None
    - bool/int/float/str/timedelta and their subclasses → the type called without arguments
    - list[...] and list subclasses → an empty list of that type
    - dataclasses → an instance built from defaults plus zero values
    """
    annotation, _ = _strip(annotation)
    if _optional(annotation) is not Unset or get_origin(annotation) is Ref or annotation is Ref:
        return None
    if isinstance(origin := get_origin(annotation), type) and issubclass(origin, list):
        return origin()
    if isinstance(annotation, type):
        if dataclasses.is_dataclass(annotation):
            return _build(annotation)
        if issubclass(annotation, (bool, int, float, str, list, timedelta)) and not issubclass(annotation, enum.Enum):
            return annotation()
    return None


__all__ = (
    # Types
    "NodeKind",
    "Indirection",
    "Layer",
    "Node",

    # Functions
    "walk",
    "zero",
)
