from graphwire.exceptions import (
    AmbiguousInjectionError,
    CyclicDependencyError,
    DependencyInferenceError,
    DependencyNotFoundError,
    GraphwireError,
    ImmutableInjectionTargetError,
    NotInstantiableError,
)
from graphwire.markers import Inject, inject
from graphwire.plans import ConstructionPlan
from graphwire.providers import ProviderKind, ProviderSpec
from graphwire.registry import Registry
from graphwire.resolver import Resolver

__all__ = [
    "AmbiguousInjectionError",
    "ConstructionPlan",
    "CyclicDependencyError",
    "DependencyInferenceError",
    "DependencyNotFoundError",
    "GraphwireError",
    "ImmutableInjectionTargetError",
    "Inject",
    "NotInstantiableError",
    "ProviderKind",
    "ProviderSpec",
    "Registry",
    "Resolver",
    "inject",
]
