from __future__ import annotations

import logging
from typing import Any

from graphwire.exceptions import describe_key
from graphwire.plans import ConstructionPlanDeriver
from graphwire.providers import ProviderSpec, UserDependency
from graphwire.resolver import Resolver
from graphwire.validation import GraphValidator

logger = logging.getLogger(__name__)


class Registry:
    """Collect component bindings and turn them into a validated resolver.

    Bindings may be registered in any order: dependency existence and cycles
    are only checked by ``build_resolver``, once the whole graph is known.
    Binding the same key again replaces the previous binding.

    Each registry is an independent value; nothing is shared between
    registries or kept at module level.

    Examples:
        .. code-block:: python

            registry = Registry()
            registry.bind_instance(Settings, Settings(dsn="sqlite://"))
            registry.bind_type(Repository, SqlRepository)

            resolver = registry.build_resolver()
            repository = resolver.get(Repository)

    """

    def __init__(self) -> None:
        self._providers: dict[UserDependency, ProviderSpec] = {}
        self._plan_deriver = ConstructionPlanDeriver()
        self._graph_validator = GraphValidator()

    # region Registration Methods
    def bind_instance(self, key: UserDependency, value: Any) -> None:
        """Bind ``key`` to a pre-built value returned by identity on every lookup.

        Args:
            key: Dependency key to bind, usually an abstract type or protocol.
            value: Value to return on resolution. ``None`` is a valid value.

        """
        self._add(ProviderSpec.constant(key, value))

    def bind_type(self, key: UserDependency, implementation: type[Any]) -> None:
        """Bind ``key`` to a class constructed anew on every lookup.

        The construction plan is derived immediately, so malformed
        implementations fail here and the previous binding for ``key``, if
        any, stays in place.

        Args:
            key: Dependency key to bind, usually an abstract type or protocol.
            implementation: Concrete class to instantiate and wire.

        Raises:
            NotInstantiableError: If ``implementation`` is not a concrete class or
                has no usable initializer.
            AmbiguousInjectionError: If more than one initializer carries
                ``@inject``.
            ImmutableInjectionTargetError: If an ``Inject[...]`` field is immutable.
            DependencyInferenceError: If a dependency key cannot be derived for an
                injection parameter.

        """
        plan = self._plan_deriver.derive(implementation)
        self._add(ProviderSpec.constructing(key, plan))

    # endregion Registration Methods

    def build_resolver(self) -> Resolver:
        """Validate every binding and return a resolver over a snapshot of them.

        Raises:
            DependencyNotFoundError: If a binding depends on an unbound key.
            CyclicDependencyError: If bindings depend on each other in a loop.

        """
        self._graph_validator.validate(self._providers)
        logger.debug("Validated dependency graph with %d binding(s)", len(self._providers))
        return Resolver(self._providers)

    def get_provider(self, key: UserDependency) -> ProviderSpec | None:
        """Return the provider currently bound to ``key``, if any."""
        return self._providers.get(key)

    def keys(self) -> list[UserDependency]:
        """Return every bound key in the order it was first bound."""
        return list(self._providers)

    def _add(self, spec: ProviderSpec) -> None:
        if spec.provides in self._providers:
            logger.debug("Replacing binding for '%s'", describe_key(spec.provides))
        self._providers[spec.provides] = spec
        logger.debug(
            "Bound '%s' with %s provider",
            describe_key(spec.provides),
            spec.kind.name.lower(),
        )

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    def __len__(self) -> int:
        return len(self._providers)
