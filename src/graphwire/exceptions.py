from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def describe_key(key: Any) -> str:
    """Return a short human-readable name for a dependency key."""
    return getattr(key, "__qualname__", None) or repr(key)


class GraphwireError(Exception):
    """Represent a base class for all graphwire-specific failures.

    Catch this type when you want to handle any graphwire error path without
    matching each concrete exception class individually.
    """


class NotInstantiableError(GraphwireError):
    """Signal that an implementation type cannot be turned into a construction plan.

    Raised by ``Registry.bind_type`` when the implementation is not a class, is
    abstract or a protocol, or has neither an ``@inject`` initializer nor one
    that can be called without arguments.

    Typical fixes include binding a concrete subclass, marking the intended
    initializer with ``@inject``, or giving every initializer parameter a
    default value.
    """

    def __init__(self, implementation: Any, reason: str) -> None:
        self.implementation = implementation
        self.reason = reason
        super().__init__(f"Cannot instantiate '{describe_key(implementation)}': {reason}.")


class DependencyInferenceError(NotInstantiableError):
    """Signal that a dependency key cannot be derived from an injection point.

    Common triggers are missing or unresolvable type annotations on
    parameters of an ``@inject`` initializer or method, and explicit
    dependencies that name unknown parameters.

    Typical fixes include adding concrete parameter annotations or passing
    explicit keys with ``@inject(name=Key)``.
    """


class AmbiguousInjectionError(GraphwireError):
    """Signal that more than one initializer carries the inject marker.

    Raised by ``Registry.bind_type`` before any other part of the class is
    inspected. Keep ``@inject`` on exactly one of ``__init__`` and the
    alternative constructors.
    """

    def __init__(self, implementation: Any, initializers: Sequence[str]) -> None:
        self.implementation = implementation
        self.initializers = tuple(initializers)
        names = ", ".join(f"'{name}'" for name in self.initializers)
        super().__init__(
            f"Multiple injection initializers found on '{describe_key(implementation)}': {names}.",
        )


class ImmutableInjectionTargetError(GraphwireError):
    """Signal that an ``Inject[...]`` field cannot be assigned after construction.

    Raised by ``Registry.bind_type`` when a marked field is declared ``Final``
    or ``ClassVar``, or belongs to a frozen dataclass.
    """

    def __init__(self, implementation: Any, field_name: str) -> None:
        self.implementation = implementation
        self.field_name = field_name
        super().__init__(
            f"Injection field '{describe_key(implementation)}.{field_name}' is immutable.",
        )


class DependencyNotFoundError(GraphwireError):
    """Signal that a declared dependency key has no binding.

    Raised by ``Registry.build_resolver``. ``dependencies`` holds the chain
    from the requesting key to the missing one, so it always has at least two
    entries and ends with the missing key.
    """

    def __init__(self, dependencies: Sequence[Any]) -> None:
        self.dependencies = list(dependencies)
        flow = " -> ".join(describe_key(key) for key in self.dependencies)
        super().__init__(f"{flow} not found")


class CyclicDependencyError(GraphwireError):
    """Signal that bindings depend on each other in a loop.

    Raised by ``Registry.build_resolver``. ``dependencies`` holds the cycle
    starting and ending with the same key, for example ``A -> B -> A``.
    """

    def __init__(self, dependencies: Sequence[Any]) -> None:
        self.dependencies = list(dependencies)
        super().__init__(" -> ".join(describe_key(key) for key in self.dependencies))
