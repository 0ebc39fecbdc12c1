"""Errors raised while registering or provisioning services."""

from typing import Optional, Sequence


class RegistryError(Exception):
    """Base class for every error raised by provisio."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key


class DuplicateServiceError(RegistryError):
    def __init__(self, key: str) -> None:
        super().__init__(key, f"service {key!r} is already registered")


class MissingConcreteTypeError(RegistryError):
    def __init__(self, key: str) -> None:
        super().__init__(
            key, f"cannot register abstract type {key!r} without a concrete type"
        )


class ServiceNotRegisteredError(RegistryError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(key, f"service {key!r} is not registered")


class ServiceProvisionError(RegistryError):
    """The service is registered but could not be produced."""


class ServiceNotInstantiableError(ServiceProvisionError):
    def __init__(self, key: str, target: str, reason: Optional[str] = None) -> None:
        if reason is None:
            reason = f"{target!r} is abstract or a protocol and cannot be instantiated"
        super().__init__(key, f"service {key!r} is not instantiable: {reason}")
        self.target = target


class UnresolvableParameterError(ServiceProvisionError):
    def __init__(self, key: str, parameter: str, target: str) -> None:
        super().__init__(
            key,
            f"parameter {parameter!r} of {target!r} cannot be resolved "
            f"(while providing {key!r}): it has no service type, default value "
            "or optional annotation",
        )
        self.parameter = parameter
        self.target = target


class CyclicDependencyError(ServiceProvisionError):
    def __init__(self, key: str, path: Sequence[str]) -> None:
        self.path = tuple(path) + (key,)
        super().__init__(key, "cyclic dependency: " + " -> ".join(self.path))
