"""Metadata describes how a class can be constructed by the ServiceProvider."""

import abc
import builtins
import inspect
import logging
import pkgutil
import sys
import types
import typing
from typing import Any, Dict, ForwardRef, Optional, Tuple

import attr
from typing_extensions import TypeAlias, get_args, get_origin, is_protocol

from .model import key_name

LOG = logging.getLogger(__name__)

_NoneType = type(None)
# `X | Y` unions only exist on python >= 3.10
_UnionType = getattr(types, "UnionType", None)

# Modules whose classes are plain values rather than injectable services.
_PRIMITIVE_MODULES = frozenset(["builtins", "typing", "typing_extensions", "collections.abc", "types"])


class IntrospectionError(Exception):
    """A target could not be loaded or its constructor could not be inspected."""


@attr.frozen
class Primitive:
    """A built-in or otherwise non-injectable type (int, str, list, Any...)."""

    kind: str

    def service_name(self) -> Optional[str]:
        return None


@attr.frozen
class Named:
    """A class (or unresolved forward reference) that may name a service."""

    name: str
    cls: Optional[type] = attr.field(default=None, eq=False)

    def service_name(self) -> Optional[str]:
        return self.name


@attr.frozen
class UnionOf:
    """A union of types, None members excluded."""

    members: Tuple["TypeRef", ...]

    def service_name(self) -> Optional[str]:
        # the first non-primitive member wins, in declaration order
        for member in self.members:
            name = member.service_name()
            if name is not None:
                return name
        return None


TypeRef: TypeAlias = "typing.Union[Primitive, Named, UnionOf]"


def service_type(ref: Optional[TypeRef]) -> Optional[Named]:
    """Return the member of a type reference that should be injected, if any."""
    if isinstance(ref, Named):
        return ref
    if isinstance(ref, UnionOf):
        for member in ref.members:
            if isinstance(member, Named):
                return member
    return None


@attr.frozen
class ParameterSpec:
    """One constructor parameter, as seen by the resolver."""

    name: str
    kind: Any
    annotation: Optional[TypeRef] = None
    default: Any = attr.field(default=inspect.Parameter.empty, eq=False)
    nullable: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def positional_only(self) -> bool:
        return self.kind is inspect.Parameter.POSITIONAL_ONLY

    @property
    def variadic(self) -> bool:
        return self.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@attr.frozen
class ConstructorSpec:
    cls: type
    parameters: Tuple[ParameterSpec, ...] = ()


class TypeInspector(abc.ABC):
    """
    Capability the ServiceProvider consumes to learn how to build a target.
    Implementations raise IntrospectionError for anything they cannot load or
    inspect.
    """

    @abc.abstractmethod
    def load(self, target: Any) -> type:
        """Return the class named by target (a class or a dotted path)."""

    @abc.abstractmethod
    def is_instantiable(self, cls: type) -> bool:
        """False for abstract classes and protocols."""

    @abc.abstractmethod
    def constructor(self, cls: type) -> ConstructorSpec:
        """Describe the constructor parameters of cls, in declaration order."""


def describe_annotation(hint: Any) -> Tuple[Optional[TypeRef], bool]:
    """
    Translate a type hint into a TypeRef.
    Returns:
        The type reference (None when there is no annotation) and whether the
        annotation admits None.
    """
    if hint is inspect.Parameter.empty:
        return None, False
    if hint is None or hint is _NoneType:
        return Primitive("none"), True
    if isinstance(hint, str):
        if inspect.isclass(getattr(builtins, hint, None)):
            return Primitive(hint), False
        return Named(hint), False
    if isinstance(hint, ForwardRef):
        return Named(hint.__forward_arg__), False

    origin = get_origin(hint)
    if origin is typing.Union or (_UnionType is not None and origin is _UnionType):
        members = []
        nullable = False
        for arg in get_args(hint):
            ref, arg_nullable = describe_annotation(arg)
            nullable = nullable or arg_nullable
            if ref is not None and not (isinstance(ref, Primitive) and ref.kind == "none"):
                members.append(ref)
        if len(members) == 1:
            return members[0], nullable
        return UnionOf(tuple(members)), nullable

    cls = origin if origin is not None else hint
    if inspect.isclass(cls):
        if cls.__module__ in _PRIMITIVE_MODULES:
            return Primitive(cls.__name__), False
        return Named(key_name(cls), cls), False

    # Any, TypeVar, Literal and friends never name a service
    return Primitive(getattr(hint, "_name", None) or repr(hint)), False


def _evaluate_hint(hint: Any, globalns: Dict[str, Any], localns: Dict[str, Any]) -> Any:
    if isinstance(hint, ForwardRef):
        hint = hint.__forward_arg__
    if not isinstance(hint, str):
        return hint
    try:
        return eval(hint, globalns, localns)
    except (NameError, AttributeError, SyntaxError, TypeError):
        # stays a forward reference, matched against service identifiers by name
        return hint


def _get_init_type_hints(cls: type) -> Dict[str, Any]:
    init = cls.__init__
    try:
        return typing.get_type_hints(init)
    except NameError as exc:
        LOG.warning(
            "'%s' name error retrieving %s type hints, evaluating annotations one by one",
            getattr(exc, "name", exc),
            cls.__qualname__,
        )
    except TypeError:
        return {}

    module = sys.modules.get(cls.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns = {cls.__name__: cls}
    annotations = getattr(init, "__annotations__", {})
    return {name: _evaluate_hint(hint, globalns, localns) for name, hint in annotations.items()}


class SignatureInspector(TypeInspector):
    """TypeInspector built on inspect.signature and typing.get_type_hints."""

    def load(self, target: Any) -> type:
        if inspect.isclass(target):
            return target
        if not isinstance(target, str):
            raise IntrospectionError(f"{target!r} is neither a class nor a class path")

        try:
            obj = pkgutil.resolve_name(target)
        except (ImportError, AttributeError, ValueError) as exc:
            raise IntrospectionError(f"class {target!r} does not exist: {exc}") from exc
        if not inspect.isclass(obj):
            raise IntrospectionError(f"{target!r} does not name a class")
        return obj

    def is_instantiable(self, cls: type) -> bool:
        return not inspect.isabstract(cls) and not is_protocol(cls)

    def constructor(self, cls: type) -> ConstructorSpec:
        if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
            return ConstructorSpec(cls)

        try:
            signature = inspect.signature(cls)
        except (TypeError, ValueError) as exc:
            raise IntrospectionError(
                f"constructor of {cls.__qualname__} cannot be inspected: {exc}"
            ) from exc

        hints = _get_init_type_hints(cls)
        parameters = []
        for name, param in signature.parameters.items():
            hint = hints.get(name, param.annotation)
            annotation, nullable = describe_annotation(hint)
            parameters.append(
                ParameterSpec(
                    name=name,
                    kind=param.kind,
                    annotation=annotation,
                    default=param.default,
                    nullable=nullable,
                )
            )
        return ConstructorSpec(cls, tuple(parameters))
