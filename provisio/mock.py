from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union
from unittest.mock import MagicMock

from typing_extensions import TypeAlias

from .errors import UnresolvableParameterError
from .metadata import SignatureInspector, TypeInspector, service_type
from .model import Resolver, key_name
from .types import Arg

T = TypeVar("T")

MockingFunction: TypeAlias = Callable[[Arg], Any]

DEFAULT_MOCKING_FUNCTION: MockingFunction = lambda arg: MagicMock(spec=arg)


def mock(
    target: Union[str, Type[T]],
    provider: Optional[Resolver] = None,
    mocking_function: Optional[MockingFunction] = None,
    inspector: Optional[TypeInspector] = None,
) -> T:
    """
    Instantiate target with a mock for every constructor parameter that names
    a service type, without touching any registry.

    Parameters that do not name a service receive their configured value (when
    a provider is given), their default, or None when their annotation allows
    it. Services known only by an unresolved forward reference are mocked
    with a spec-less MagicMock.

    Raises:
        UnresolvableParameterError: a parameter has none of the above.
    """
    mocking_f = mocking_function or DEFAULT_MOCKING_FUNCTION
    inspector = inspector or SignatureInspector()

    cls = inspector.load(target)
    name = key_name(cls)
    configured: Dict[str, Any] = {}
    if provider is not None:
        configured = provider.config.get_init_kwargs(cls, name)

    args: List[Any] = []
    kwargs: Dict[str, Any] = {}
    for param in inspector.constructor(cls).parameters:
        if param.variadic:
            continue

        named = service_type(param.annotation)
        if param.name in configured:
            value = configured[param.name]
        elif named is not None:
            value = mocking_f(named.cls)
        elif param.has_default:
            value = param.default
        elif param.nullable:
            value = None
        else:
            raise UnresolvableParameterError(name, param.name, name)

        if param.positional_only:
            args.append(value)
        else:
            kwargs[param.name] = value

    return cls(*args, **kwargs)
