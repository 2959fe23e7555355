from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from graphwire.exceptions import CyclicDependencyError, DependencyNotFoundError
from graphwire.providers import ProviderSpec, UserDependency

_EXHAUSTED = object()


@dataclass(slots=True)
class GraphValidator:
    """Proves a set of bindings is resolvable before any instance is built."""

    def validate(self, providers: Mapping[UserDependency, ProviderSpec]) -> None:
        """Check that every dependency is bound and that no binding depends on itself.

        Raises:
            DependencyNotFoundError: On the first dependency key with no binding.
            CyclicDependencyError: On the first dependency cycle found.

        """
        self._check_dependencies_exist(providers)
        self._check_cyclic_dependencies(providers)

    def _check_dependencies_exist(self, providers: Mapping[UserDependency, ProviderSpec]) -> None:
        for key, spec in providers.items():
            for dependency in spec.dependencies:
                if dependency not in providers:
                    raise DependencyNotFoundError([key, dependency])

    def _check_cyclic_dependencies(self, providers: Mapping[UserDependency, ProviderSpec]) -> None:
        # Keys whose whole reachable subgraph is known to be acyclic.
        verified: set[UserDependency] = set()

        for root in providers:
            if root in verified:
                continue

            path: list[UserDependency] = [root]
            on_path: set[UserDependency] = {root}
            pending: list[Iterator[UserDependency]] = [iter(providers[root].dependencies)]

            while pending:
                dependency = next(pending[-1], _EXHAUSTED)
                if dependency is _EXHAUSTED:
                    pending.pop()
                    finished = path.pop()
                    on_path.discard(finished)
                    verified.add(finished)
                    continue

                if dependency in on_path:
                    reentry = path.index(dependency)
                    raise CyclicDependencyError([*path[reentry:], dependency])
                if dependency in verified:
                    continue

                path.append(dependency)
                on_path.add(dependency)
                pending.append(iter(providers[dependency].dependencies))
