from typing import Any, Optional

from .model import Lifecycle, ServiceKey
from .registry import Registry


class ServiceContainer:
    """Registration façade over a Registry."""

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def add_scoped(self, abstraction: ServiceKey, concrete: Optional[Any] = None) -> None:
        self._registry.add(abstraction, concrete, Lifecycle.SCOPED)

    def add_ephemeral(self, abstraction: ServiceKey, concrete: Optional[Any] = None) -> None:
        self._registry.add(abstraction, concrete, Lifecycle.EPHEMERAL)

    def set_object(self, key: ServiceKey, instance: Any) -> None:
        self._registry.set_object(key, instance)

    def reset_all(self) -> None:
        self._registry.reset_all()
