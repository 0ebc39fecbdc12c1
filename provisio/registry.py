"""The Registry is the process-wide table of service definitions and cached instances."""
import functools
import inspect
import logging
import pkgutil
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, TypeVar

import attr
from typing_extensions import Concatenate, ParamSpec, is_protocol

from .config import RegistryConfigWrapper, RegistryInitConfig
from .errors import DuplicateServiceError, MissingConcreteTypeError
from .model import Lifecycle, ServiceDefinition, ServiceKey, _is_factory, key_name
from .types import Resettable, _is_resettable

LOG = logging.getLogger(__name__)

R = TypeVar("R")
P = ParamSpec("P")


def initialize(config: Optional[RegistryInitConfig] = None) -> "Registry":
    """Initialize a new registry instance."""
    LOG.debug("initializing a new registry instance")
    return Registry(config)


@attr.define
class _Entry:
    """Mutable registry slot behind a ServiceDefinition snapshot."""

    target: Any
    lifecycle: Lifecycle
    instance: Optional[Any] = None
    # set once an instance was stored, None included
    cached: bool = False

    def snapshot(self, abstraction: str) -> ServiceDefinition:
        return ServiceDefinition(
            abstraction, self.target, self.lifecycle, self.instance, self.cached
        )


def _synchronized(
    func: Callable[Concatenate["Registry", P], R]
) -> Callable[Concatenate["Registry", P], R]:
    """Decorator to synchronize method access with a reentrant lock."""

    @functools.wraps(func)
    def wrapper(self: "Registry", *args: P.args, **kwargs: P.kwargs) -> R:
        with self._lock:
            return func(self, *args, **kwargs)

    return wrapper


def _is_abstract(key: ServiceKey) -> bool:
    """True if key names a class that can never be constructed directly."""
    cls: Any = key
    if isinstance(key, str):
        try:
            cls = pkgutil.resolve_name(key)
        except (ImportError, AttributeError, ValueError):
            # not importable (yet), the provider reports it at resolution time
            return False
    return inspect.isclass(cls) and (inspect.isabstract(cls) or is_protocol(cls))


class Registry:
    """Tracks service definitions, their aliases and cached instances."""

    def __init__(self, config: Optional[RegistryInitConfig] = None):
        self._definitions: Dict[str, _Entry] = {}
        self._aliases: Dict[str, str] = {}
        # cached instances exposing reset(), keyed by id()
        self._resettable: Dict[int, Resettable] = {}
        self._config = RegistryConfigWrapper()

        self._lock = RLock()

        if config is not None:
            self._config._from_dict(config)

    @property
    def config(self) -> RegistryConfigWrapper:
        return self._config

    @property
    def lock(self) -> RLock:
        """The reentrant lock serializing mutation and resolution."""
        return self._lock

    def _canonical(self, key: ServiceKey) -> str:
        name = key_name(key)
        return self._aliases.get(name, name)

    @_synchronized
    def add(
        self,
        abstraction: ServiceKey,
        concrete: Optional[Any] = None,
        lifecycle: Lifecycle = Lifecycle.SCOPED,
    ) -> None:
        """Register a new service definition.

        Parameters:
            abstraction: the identifier (string or class) of the service.
            concrete: the class, dotted class path or factory fulfilling the
                abstraction. When omitted the abstraction itself is constructed.
            lifecycle: Lifecycle.SCOPED to cache the instance, Lifecycle.EPHEMERAL
                to build a new instance on every resolution.
        Raises:
            DuplicateServiceError: the abstraction (or an alias with its name)
                is already registered.
            MissingConcreteTypeError: no concrete was given and the abstraction
                is an abstract class or a protocol.
            TypeError: the concrete is not a class, a class path or a callable.
        """
        name = key_name(abstraction)
        if self.exists(name):
            raise DuplicateServiceError(name)

        alias: Optional[str] = None
        if concrete is None:
            if _is_abstract(abstraction):
                raise MissingConcreteTypeError(name)
            target = abstraction
        else:
            target = concrete
            if not _is_factory(concrete):
                # the concrete's own identifier becomes an alias of the abstraction
                alias = key_name(concrete)

        lifecycle = Lifecycle(lifecycle)
        LOG.debug("adding %s service %s (target=%s)", lifecycle.name.lower(), name, target)
        self._definitions[name] = _Entry(target, lifecycle)

        if alias is not None and alias != name:
            previous = self._aliases.get(alias)
            if alias in self._definitions:
                LOG.warning("alias %s of %s shadows a registered service", alias, name)
            elif previous is not None:
                LOG.warning("alias %s moves from %s to %s", alias, previous, name)
            self._aliases[alias] = name

    @_synchronized
    def exists(self, key: ServiceKey) -> bool:
        """True if key is a registered abstraction or a known alias."""
        name = key_name(key)
        return name in self._definitions or name in self._aliases

    def __contains__(self, key: ServiceKey) -> bool:
        return self.exists(key)

    @_synchronized
    def get(self, key: ServiceKey) -> Optional[ServiceDefinition]:
        """Get a snapshot of the definition for key, or None if it is not registered.

        Parameters:
            key: an abstraction or an alias.
        """
        canonical = self._canonical(key)
        entry = self._definitions.get(canonical)
        if entry is None:
            return None
        return entry.snapshot(canonical)

    @_synchronized
    def remove(self, key: ServiceKey) -> None:
        """Remove a definition, its cached instance and every alias pointing at it."""
        name = key_name(key)
        canonical = self._aliases.get(name, name)

        entry = self._definitions.pop(canonical, None)
        if entry is not None:
            LOG.debug("removing service %s", canonical)
            self._untrack(entry.instance)

        self._aliases.pop(name, None)
        for alias in [a for a, target in self._aliases.items() if target == canonical]:
            del self._aliases[alias]

    @_synchronized
    def set_object(self, key: ServiceKey, instance: Any) -> None:
        """Replace the cached instance of a scoped service.

        The previous instance stops taking part in reset_all; the new one takes
        part if it is resettable. Unknown keys are ignored. None is a valid
        instance and is returned as is by later resolutions.
        """
        canonical = self._canonical(key)
        entry = self._definitions.get(canonical)
        if entry is None:
            LOG.debug("ignoring instance for unregistered service %s", canonical)
            return
        if entry.lifecycle is not Lifecycle.SCOPED:
            LOG.warning("ignoring instance for ephemeral service %s", canonical)
            return

        previous = entry.instance
        entry.instance = instance
        entry.cached = True
        self._untrack(previous)
        if _is_resettable(instance):
            self._resettable[id(instance)] = instance

    def _untrack(self, instance: Optional[Any]) -> None:
        if instance is None:
            return
        # the same object may still be cached under another definition
        if not any(entry.instance is instance for entry in self._definitions.values()):
            self._resettable.pop(id(instance), None)

    @_synchronized
    def reset_all(self) -> None:
        """Call reset() on every cached instance that supports it."""
        LOG.debug("resetting %d instances", len(self._resettable))
        for instance in list(self._resettable.values()):
            instance.reset()

    @property
    def resettable_instances(self) -> List[Resettable]:
        with self._lock:
            return list(self._resettable.values())

    @property
    def count(self) -> int:
        """Number of registered definitions (aliases excluded)."""
        return len(self)

    @_synchronized
    def __len__(self) -> int:
        return len(self._definitions)
