from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, TypeAlias

from graphwire.plans import ConstructionPlan

UserDependency: TypeAlias = Any
"""A dependency key that has been registered or is being resolved by the user's code."""


class ProviderKind(Enum):
    """The closed set of provider variants."""

    CONSTANT = auto()
    """Returns one pre-built value on every resolution."""

    CONSTRUCTING = auto()
    """Builds a fresh instance from a construction plan on every resolution."""


@dataclass(frozen=True, slots=True, kw_only=True)
class ProviderSpec:
    """A specification of a provider bound to one dependency key."""

    provides: UserDependency
    """The dependency key that this provider supplies."""
    kind: ProviderKind
    """Which variant this spec holds."""
    instance: Any = None
    """The wrapped value of a constant provider."""
    plan: ConstructionPlan | None = None
    """The construction plan of a constructing provider."""

    @classmethod
    def constant(cls, provides: UserDependency, instance: Any) -> ProviderSpec:
        """Create a provider that always returns ``instance``."""
        return cls(provides=provides, kind=ProviderKind.CONSTANT, instance=instance)

    @classmethod
    def constructing(cls, provides: UserDependency, plan: ConstructionPlan) -> ProviderSpec:
        """Create a provider that realizes ``plan`` on every resolution."""
        return cls(provides=provides, kind=ProviderKind.CONSTRUCTING, plan=plan)

    @property
    def dependencies(self) -> tuple[UserDependency, ...]:
        """The keys this provider needs, in initializer, field, method order."""
        if self.plan is None:
            return ()
        return self.plan.dependencies
