from typing import Any, Dict, Mapping, Optional, TypeVar, Union

from typing_extensions import TypedDict

from .types import Kwargs

# Unbound, invariant type variable
T = TypeVar("T")


class InternalRegistryConfig(TypedDict, total=False):
    # Class names (short or "module.qualname") mapped to the kwargs used when
    # constructing that class.
    by_class: Mapping[str, Kwargs]
    # Canonical service identifiers mapped to the kwargs used when constructing
    # the target registered under that identifier.
    by_name: Mapping[str, Kwargs]


RegistryInitConfig = Union[Mapping[str, Any], InternalRegistryConfig]


class RegistryConfigWrapper:
    """Manages the configuration of the registry."""

    def __init__(self):
        self._impl = {}

    def _from_dict(self, config_dict: RegistryInitConfig):
        """Configure the registry from a dictionary-like mapping.
        Besides the by_class and by_name sections, the mapping may hold any
        general configuration that factories read through Resolver.config.

        Parameters:
            config_dict: the configuration data to apply.
        """
        self._impl = config_dict

    def __contains__(self, key: str):
        return key in self._impl

    def get(self, key: str, default: Optional[T] = None) -> T:
        return self._impl.get(key, default)

    def __getitem__(self, key: str) -> Any:
        item: Optional[Any] = self.get(key)
        if item is None:
            raise KeyError(key)
        return item

    def get_init_kwargs(self, cls: type, name: Optional[str] = None) -> Kwargs:
        """Get the constructor kwargs configured for a class.

        Parameters:
            cls: the class about to be constructed.
            name: canonical identifier of the service being provided.
        """
        result: Dict[str, Any] = {}

        by_class = self._impl.get("by_class")
        if by_class:
            # first apply config for the class name
            cls_name = cls.__name__
            kwargs = by_class.get(cls_name)
            if kwargs:
                result.update(kwargs)

            # then apply config for the fully qualified class name
            cls_module = f"{cls.__module__}.{cls.__qualname__}"
            kwargs = by_class.get(cls_module)
            if kwargs:
                result.update(kwargs)

        # finally apply config for the service by name
        by_name = self._impl.get("by_name")
        if by_name and name:
            kwargs = by_name.get(name)
            if kwargs:
                result.update(kwargs)

        return result
