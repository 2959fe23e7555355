"""Binding and validation errors.

Malformed implementation types fail as soon as they are bound. Missing
dependencies and cycles are reported when the resolver is built.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Final

from graphwire import (
    AmbiguousInjectionError,
    CyclicDependencyError,
    DependencyNotFoundError,
    ImmutableInjectionTargetError,
    Inject,
    NotInstantiableError,
    Registry,
    inject,
)


class Cache:
    pass


class Repository(ABC):
    @abstractmethod
    def load(self) -> str: ...


class CachedRepository(Repository):
    @inject
    def __init__(self, cache: Cache) -> None:
        self.cache = cache

    def load(self) -> str:
        return "cached"


class TwoWays:
    @inject
    def __init__(self, cache: Cache) -> None:
        self.cache = cache

    @classmethod
    @inject
    def create(cls, cache: Cache) -> TwoWays:
        return cls(cache)


class FrozenSettings:
    cache: Final[Inject[Cache]]


class Chicken:
    @inject
    def __init__(self, egg: Egg) -> None:
        self.egg = egg


class Egg:
    @inject
    def __init__(self, chicken: Chicken) -> None:
        self.chicken = chicken


def main() -> None:
    registry = Registry()

    try:
        registry.bind_type(Repository, Repository)
    except NotInstantiableError as error:
        print(error)  # => Cannot instantiate 'Repository': abstract classes cannot be instantiated.

    try:
        registry.bind_type(TwoWays, TwoWays)
    except AmbiguousInjectionError as error:
        print(error)  # => Multiple injection initializers found on 'TwoWays': '__init__', 'create'.

    try:
        registry.bind_type(FrozenSettings, FrozenSettings)
    except ImmutableInjectionTargetError as error:
        print(error)  # => Injection field 'FrozenSettings.cache' is immutable.

    registry.bind_type(Repository, CachedRepository)
    try:
        registry.build_resolver()
    except DependencyNotFoundError as error:
        print(error)  # => Repository -> Cache not found

    cyclic = Registry()
    cyclic.bind_type(Chicken, Chicken)
    cyclic.bind_type(Egg, Egg)
    try:
        cyclic.build_resolver()
    except CyclicDependencyError as error:
        print(error)  # => Chicken -> Egg -> Chicken


if __name__ == "__main__":
    main()
