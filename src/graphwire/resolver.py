from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, TypeVar, cast, overload

from graphwire.plans import ConstructionPlan
from graphwire.providers import ProviderKind, ProviderSpec, UserDependency

T = TypeVar("T")


class Resolver:
    """Build fully wired instances from a validated set of bindings.

    Resolvers are produced by ``Registry.build_resolver`` and hold a read-only
    snapshot of the bindings at that moment. Bindings added to the registry
    later never affect an existing resolver.

    Constant bindings always return the same object. Type bindings are
    constructed anew on every ``get`` call; nothing is cached.
    """

    __slots__ = ("_providers",)

    def __init__(self, providers: Mapping[UserDependency, ProviderSpec]) -> None:
        self._providers: Mapping[UserDependency, ProviderSpec] = MappingProxyType(dict(providers))

    @overload
    def get(self, key: type[T]) -> T | None: ...

    @overload
    def get(self, key: Any) -> Any: ...

    def get(self, key: Any) -> Any:
        """Return an instance for ``key``, or ``None`` when ``key`` is not bound.

        Unhashable keys can never be bound, so they resolve to ``None`` as well.
        Constructing bindings resolve initializer arguments first, then assign
        ``Inject[...]`` fields, then call ``@inject`` methods in plan order.
        Exceptions raised by user initializers and methods propagate unchanged.
        """
        spec = self._lookup(key)
        if spec is None:
            return None
        if spec.kind is ProviderKind.CONSTANT:
            return spec.instance
        plan = cast("ConstructionPlan", spec.plan)
        return plan.build(self.get)

    def _lookup(self, key: Any) -> ProviderSpec | None:
        try:
            return self._providers.get(key)
        except TypeError:
            # Unhashable keys, including tuples holding unhashable items.
            return None

    def __contains__(self, key: object) -> bool:
        return self._lookup(key) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(bindings={len(self._providers)})"
