from typing import Any, Dict

from typing_extensions import Protocol, runtime_checkable

Arg = Any
Kwargs = Dict[str, Arg]


@runtime_checkable
class Resettable(Protocol):
    """
    Capability of a cached instance to clear its per-request state without
    being reconstructed. Detection is structural: any object with a callable
    zero-argument ``reset`` method qualifies.
    """

    def reset(self) -> None: ...


def _is_resettable(obj: Any) -> bool:
    # runtime_checkable only checks that the attribute exists
    return isinstance(obj, Resettable) and callable(getattr(obj, "reset", None))

