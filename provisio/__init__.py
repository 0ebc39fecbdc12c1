"""
The Registry provides dependency injection for long-lived worker processes.

Services are registered once, at process start, under an abstraction (a
class or a string identifier) together with the concrete class or factory
that fulfills it and a lifecycle. A ServiceProvider then builds whole object
graphs on demand by reading constructor type hints:

import provisio

registry = provisio.initialize()
container = provisio.ServiceContainer(registry)
container.add_scoped(Logger)
container.add_scoped(Mailer, SmtpMailer)
container.add_ephemeral(RequestContext)

provider = provisio.ServiceProvider(registry)
mailer = provider.get_service(Mailer)   # SmtpMailer(logger=<Logger>)

Scoped services are built once and cached in the registry; they can also be
fetched through the concrete class (SmtpMailer above), which is recorded as an
alias. Ephemeral services are rebuilt on every call.

A factory (any callable that is not a class) may be registered instead of a
class; it receives the provider and returns the instance:

container.add_scoped("db", lambda provider: connect(provider.config["dsn"]))

Between two requests a worker calls registry.reset_all() (or
container.reset_all()), which invokes reset() on every cached instance that
defines one, instead of rebuilding the registry.
"""

__version__ = "1.0.0"

from .container import ServiceContainer
from .errors import (
    CyclicDependencyError,
    DuplicateServiceError,
    MissingConcreteTypeError,
    RegistryError,
    ServiceNotInstantiableError,
    ServiceNotRegisteredError,
    ServiceProvisionError,
    UnresolvableParameterError,
)
from .model import Lifecycle, ServiceDefinition
from .provider import ServiceProvider
from .registry import Registry, initialize
from .types import Resettable

__all__ = [
    "CyclicDependencyError",
    "DuplicateServiceError",
    "initialize",
    "Lifecycle",
    "MissingConcreteTypeError",
    "Registry",
    "RegistryError",
    "Resettable",
    "ServiceContainer",
    "ServiceDefinition",
    "ServiceNotInstantiableError",
    "ServiceNotRegisteredError",
    "ServiceProvider",
    "ServiceProvisionError",
    "UnresolvableParameterError",
]
