"""Shared pytest fixtures for graphwire tests."""

import pytest

from graphwire.plans import ConstructionPlanDeriver
from graphwire.registry import Registry
from graphwire.validation import GraphValidator


@pytest.fixture()
def registry() -> Registry:
    """Empty registry with no bindings."""
    return Registry()


@pytest.fixture()
def plan_deriver() -> ConstructionPlanDeriver:
    """ConstructionPlanDeriver instance."""
    return ConstructionPlanDeriver()


@pytest.fixture()
def graph_validator() -> GraphValidator:
    """GraphValidator instance."""
    return GraphValidator()
