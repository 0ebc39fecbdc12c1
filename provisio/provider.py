"""The ServiceProvider builds fully wired objects out of Registry definitions."""
import logging
from typing import Any, Dict, List, Optional

from .config import RegistryConfigWrapper
from .errors import (
    CyclicDependencyError,
    ServiceNotInstantiableError,
    ServiceNotRegisteredError,
    UnresolvableParameterError,
)
from .metadata import IntrospectionError, ParameterSpec, SignatureInspector, TypeInspector
from .model import Lifecycle, Resolver, ServiceDefinition, ServiceKey, key_name
from .registry import Registry

LOG = logging.getLogger(__name__)


class ServiceProvider(Resolver):
    """Resolves service keys registered in a Registry into instances."""

    def __init__(self, registry: Registry, inspector: Optional[TypeInspector] = None) -> None:
        self._registry = registry
        self._inspector = inspector or SignatureInspector()
        # canonical keys currently being constructed, outermost first
        self._resolving: List[str] = []

    @property
    def config(self) -> RegistryConfigWrapper:
        return self._registry.config

    @property
    def registry(self) -> Registry:
        return self._registry

    def get_service(self, key: ServiceKey) -> Any:
        """Get an instance of the service registered under key.

        Parameters:
            key: an abstraction or alias, as a string or a class.
        Returns:
            The cached instance of a scoped service, or a newly built instance.
        Raises:
            ServiceNotRegisteredError: nothing is registered under key.
            ServiceProvisionError: the service (or one of its dependencies)
                could not be built.
        """
        with self._registry.lock:
            definition = self._registry.get(key)
            if definition is None:
                raise ServiceNotRegisteredError(key_name(key))
            return self._provide(definition)

    def _provide(self, definition: ServiceDefinition) -> Any:
        if definition.lifecycle is Lifecycle.SCOPED and definition.cached:
            return definition.instance

        abstraction = definition.abstraction
        if abstraction in self._resolving:
            raise CyclicDependencyError(abstraction, self._resolving)

        self._resolving.append(abstraction)
        try:
            if definition.is_factory:
                LOG.debug("calling factory %s for %s", definition.target_name, abstraction)
                obj = definition.target(self)
            else:
                obj = self._construct(definition)
        finally:
            self._resolving.pop()

        if definition.lifecycle is Lifecycle.SCOPED:
            self._registry.set_object(abstraction, obj)
        return obj

    def _construct(self, definition: ServiceDefinition) -> Any:
        abstraction = definition.abstraction
        target_name = definition.target_name
        try:
            cls = self._inspector.load(definition.target)
            if not self._inspector.is_instantiable(cls):
                if abstraction == target_name:
                    raise ServiceNotInstantiableError(
                        abstraction,
                        target_name,
                        "it was registered without a concrete implementation",
                    )
                raise ServiceNotInstantiableError(abstraction, target_name)
            spec = self._inspector.constructor(cls)
        except IntrospectionError as exc:
            raise ServiceNotInstantiableError(abstraction, target_name, str(exc)) from exc

        configured = self.config.get_init_kwargs(cls, abstraction)
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for param in spec.parameters:
            if param.variadic:
                continue
            value = self._resolve_param(abstraction, target_name, param, configured)
            if param.positional_only:
                args.append(value)
            else:
                kwargs[param.name] = value

        LOG.debug("constructing %s for %s", target_name, abstraction)
        return cls(*args, **kwargs)

    def _resolve_param(
        self, abstraction: str, target_name: str, param: ParameterSpec, configured: Dict[str, Any]
    ) -> Any:
        """Resolve one constructor argument.

        Resolution precedence:
        1. value configured for the parameter
        2. registered service type (first non-primitive member of a union)
        3. unregistered service type without default: resolve anyway so the
           missing registration is reported
        4. default
        5. None, if the annotation admits it
        6. error.
        """
        if param.name in configured:
            return configured[param.name]

        service = param.annotation.service_name() if param.annotation is not None else None
        if service is not None:
            if self._registry.exists(service) or not param.has_default:
                return self.get_service(service)

        if param.has_default:
            return param.default
        if param.nullable:
            return None
        raise UnresolvableParameterError(abstraction, param.name, target_name)

