import abc
import enum
import inspect
from typing import Any, Optional, Type, Union

import attr
from typing_extensions import TypeAlias

from .config import RegistryConfigWrapper

# A service is identified either by a string or by a class. Classes are
# normalized to their qualified name before touching any registry table.
ServiceKey: TypeAlias = "Union[str, Type[Any]]"


def key_name(key: ServiceKey) -> str:
    """Return the canonical string identifier for a service key."""
    if isinstance(key, str):
        return key
    if inspect.isclass(key):
        return f"{key.__module__}.{key.__qualname__}"
    raise TypeError(f"invalid service key: {key!r}")


class Lifecycle(enum.IntEnum):
    """How long a provisioned instance lives."""

    # constructed at most once and cached in the registry
    SCOPED = 1
    # constructed again on every resolution
    EPHEMERAL = 2


def _is_factory(target: Any) -> bool:
    return callable(target) and not isinstance(target, str) and not inspect.isclass(target)


@attr.frozen
class ServiceDefinition:
    """Snapshot of a registered service, as returned by Registry.get."""

    abstraction: str
    target: Any
    lifecycle: Lifecycle
    instance: Optional[Any] = attr.field(default=None, eq=False)
    cached: bool = attr.field(default=False, eq=False)

    @property
    def is_factory(self) -> bool:
        return _is_factory(self.target)

    @property
    def target_name(self) -> str:
        if self.is_factory:
            return getattr(self.target, "__qualname__", repr(self.target))
        return key_name(self.target)


class Resolver(abc.ABC):
    """
    Interface capable of turning service keys into instances.
    Factories registered in the registry receive an implementation of this
    interface so they can pull further dependencies.
    """

    @abc.abstractmethod
    def get_service(self, key: ServiceKey) -> Any:
        ...

    @property
    @abc.abstractmethod
    def config(self) -> RegistryConfigWrapper:
        ...
