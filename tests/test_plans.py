from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Final, Protocol

import pytest

from graphwire.exceptions import (
    AmbiguousInjectionError,
    DependencyInferenceError,
    ImmutableInjectionTargetError,
    NotInstantiableError,
)
from graphwire.markers import Inject, inject
from graphwire.plans import ConstructionPlan, ConstructionPlanDeriver

if TYPE_CHECKING:
    from decimal import Decimal


class Dependency:
    pass


class AnotherDependency:
    pass


class Component(ABC):
    @abstractmethod
    def name(self) -> str:
        """Return the component name."""


class ComponentProtocol(Protocol):
    def name(self) -> str: ...


class DefaultConstructorComponent:
    pass


class DefaultValuesComponent:
    def __init__(self, label: str = "default", *args: Any, **kwargs: Any) -> None:
        self.label = label


class CannotInstanceComponent:
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency


class InjectionConstructorComponent:
    @inject
    def __init__(self, dependency: Dependency, another: AnotherDependency) -> None:
        self.dependency = dependency
        self.another = another


class KeywordOnlyComponent:
    @inject
    def __init__(self, dependency: Dependency, *, another: AnotherDependency) -> None:
        self.dependency = dependency
        self.another = another


class ExplicitKeysComponent:
    @inject(dependency=AnotherDependency)
    def __init__(self, dependency: Any, plain: Dependency) -> None:
        self.dependency = dependency
        self.plain = plain


class UnannotatedComponent:
    @inject
    def __init__(self, dependency) -> None:  # noqa: ANN001
        self.dependency = dependency


class UnknownExplicitKeyComponent:
    @inject(missing=Dependency)
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency


class MultipleInjectionConstructorComponent:
    @inject
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency

    @inject
    @classmethod
    def create(cls, another: AnotherDependency) -> MultipleInjectionConstructorComponent:
        return cls(Dependency())


class AlternativeConstructorComponent:
    def __init__(self, dependency: Dependency, source: str) -> None:
        self.dependency = dependency
        self.source = source

    @classmethod
    @inject
    def create(cls, dependency: Dependency) -> AlternativeConstructorComponent:
        return cls(dependency, "classmethod")


class StaticConstructorComponent:
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency

    @inject
    @staticmethod
    def build(dependency: Dependency) -> StaticConstructorComponent:
        return StaticConstructorComponent(dependency)


@inject
@dataclass
class DataclassComponent:
    dependency: Dependency
    another: AnotherDependency


class FieldInjectionComponent:
    dependency: Inject[Dependency]
    label: str = "not injected"


class SubclassFieldInjectionComponent(FieldInjectionComponent):
    another: Inject[AnotherDependency]


class FinalFieldComponent:
    dependency: Final[Inject[Dependency]]


class ClassVarFieldComponent:
    dependency: ClassVar[Inject[Dependency]]


@dataclass(frozen=True)
class FrozenFieldComponent:
    dependency: Inject[Dependency] = field(default=None)


class MethodInjectionComponent:
    def __init__(self) -> None:
        self.calls: list[str] = []

    @inject
    def set_dependency(self, dependency: Dependency) -> None:
        self.calls.append("base.set_dependency")

    @inject
    def initialize(self) -> None:
        self.calls.append("base.initialize")


class OverrideMethodInjectionComponent(MethodInjectionComponent):
    def set_dependency(self, dependency: Dependency) -> None:
        self.calls.append("override.set_dependency")

    @inject
    def finish(self, another: AnotherDependency) -> None:
        self.calls.append("override.finish")


class MixedInjectionComponent:
    shared: Inject[Dependency]

    @inject
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency

    @inject
    def configure(self, another: AnotherDependency, again: Dependency) -> None:
        self.another = another


class NonFunctionOverrideComponent(MethodInjectionComponent):
    initialize = None  # type: ignore[assignment]


class TypeCheckingOnlyFieldComponent:
    rate: Decimal

    def __init__(self) -> None:
        self.label = "plain"


class TypeCheckingOnlySubclassComponent(TypeCheckingOnlyFieldComponent):
    dependency: Inject[Dependency]


class TypeCheckingOnlyReturnComponent:
    @inject
    def __init__(self, dependency: Dependency) -> None:
        self.dependency = dependency

    @inject
    def configure(self, another: AnotherDependency) -> Decimal:
        return self.rate

    rate: Decimal


class TypeCheckingOnlyInjectFieldComponent:
    rate: Inject[Decimal]


class TypeCheckingOnlyParameterComponent:
    @inject
    def __init__(self, rate: Decimal) -> None:
        self.rate = rate


class TestImplementationValidation:
    def test_rejects_non_class(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(NotInstantiableError, match="must be a class") as exc_info:
            plan_deriver.derive(42)

        assert exc_info.value.implementation == 42

    def test_rejects_abstract_class(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(NotInstantiableError, match="abstract") as exc_info:
            plan_deriver.derive(Component)

        assert exc_info.value.implementation is Component

    def test_rejects_protocol(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(NotInstantiableError, match="protocol"):
            plan_deriver.derive(ComponentProtocol)

    def test_rejects_class_without_usable_initializer(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        with pytest.raises(NotInstantiableError, match="'dependency'"):
            plan_deriver.derive(CannotInstanceComponent)


class TestInitializerSelection:
    def test_default_constructor_has_no_dependencies(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(DefaultConstructorComponent)

        assert plan.initializer.name == "__init__"
        assert plan.initializer.factory is DefaultConstructorComponent
        assert plan.initializer.points == ()
        assert plan.dependencies == ()

    def test_initializer_with_defaults_and_variadics_counts_as_no_argument(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(DefaultValuesComponent)

        assert plan.initializer.points == ()

    def test_marked_initializer_parameters_become_ordered_keys(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(InjectionConstructorComponent)

        assert [point.key for point in plan.initializer.points] == [Dependency, AnotherDependency]
        assert [point.parameter.name for point in plan.initializer.points] == [
            "dependency",
            "another",
        ]

    def test_keyword_only_parameters_are_injection_points(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(KeywordOnlyComponent)

        assert plan.dependencies == (Dependency, AnotherDependency)

    def test_explicit_keys_override_annotations(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(ExplicitKeysComponent)

        assert [point.key for point in plan.initializer.points] == [AnotherDependency, Dependency]

    def test_missing_annotation_fails_with_inference_error(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        with pytest.raises(DependencyInferenceError, match="no type annotation"):
            plan_deriver.derive(UnannotatedComponent)

    def test_inference_error_is_not_instantiable_error(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        with pytest.raises(NotInstantiableError):
            plan_deriver.derive(UnannotatedComponent)

    def test_unknown_explicit_key_fails(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(DependencyInferenceError, match="unknown parameters 'missing'"):
            plan_deriver.derive(UnknownExplicitKeyComponent)

    def test_multiple_marked_initializers_are_ambiguous(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        with pytest.raises(AmbiguousInjectionError) as exc_info:
            plan_deriver.derive(MultipleInjectionConstructorComponent)

        assert exc_info.value.implementation is MultipleInjectionConstructorComponent
        assert exc_info.value.initializers == ("__init__", "create")

    def test_marked_classmethod_is_used_as_initializer(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(AlternativeConstructorComponent)

        assert plan.initializer.name == "create"
        assert plan.dependencies == (Dependency,)

    def test_marked_staticmethod_is_used_as_initializer(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(StaticConstructorComponent)

        assert plan.initializer.name == "build"
        assert plan.initializer.factory is StaticConstructorComponent.build
        assert plan.dependencies == (Dependency,)

    def test_class_marker_selects_generated_initializer(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(DataclassComponent)

        assert plan.initializer.name == "__init__"
        assert plan.dependencies == (Dependency, AnotherDependency)


class TestFieldSelection:
    def test_collects_only_marked_fields(self, plan_deriver: ConstructionPlanDeriver) -> None:
        plan = plan_deriver.derive(FieldInjectionComponent)

        assert [(item.key, item.name) for item in plan.fields] == [(Dependency, "dependency")]
        assert plan.fields[0].owner is FieldInjectionComponent

    def test_collects_fields_from_most_derived_class_upward(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(SubclassFieldInjectionComponent)

        assert [(item.name, item.owner) for item in plan.fields] == [
            ("another", SubclassFieldInjectionComponent),
            ("dependency", FieldInjectionComponent),
        ]

    @pytest.mark.parametrize(
        "implementation",
        [FinalFieldComponent, ClassVarFieldComponent, FrozenFieldComponent],
    )
    def test_immutable_marked_field_fails_at_derivation(
        self,
        plan_deriver: ConstructionPlanDeriver,
        implementation: type[Any],
    ) -> None:
        with pytest.raises(ImmutableInjectionTargetError) as exc_info:
            plan_deriver.derive(implementation)

        assert exc_info.value.implementation is implementation
        assert exc_info.value.field_name == "dependency"


class TestMethodSelection:
    def test_collects_marked_methods_in_declaration_order(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(MethodInjectionComponent)

        assert [method.name for method in plan.methods] == ["set_dependency", "initialize"]
        assert plan.methods[1].points == ()

    def test_override_replaces_marked_ancestor_method_once(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(OverrideMethodInjectionComponent)

        assert [(method.name, method.owner) for method in plan.methods] == [
            ("set_dependency", OverrideMethodInjectionComponent),
            ("initialize", MethodInjectionComponent),
            ("finish", OverrideMethodInjectionComponent),
        ]
        assert (
            plan.methods[0].function
            is vars(OverrideMethodInjectionComponent)["set_dependency"]
        )

    def test_non_function_override_fails(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(NotInstantiableError, match="'initialize'"):
            plan_deriver.derive(NonFunctionOverrideComponent)


class TestTypeCheckingOnlyAnnotations:
    def test_plain_field_with_unresolvable_annotation_is_ignored(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(TypeCheckingOnlyFieldComponent)

        assert plan.fields == ()
        assert plan.dependencies == ()
        assert isinstance(plan.build(lambda key: None), TypeCheckingOnlyFieldComponent)

    def test_unresolvable_base_annotation_does_not_hide_subclass_fields(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(TypeCheckingOnlySubclassComponent)

        assert [(item.key, item.name) for item in plan.fields] == [(Dependency, "dependency")]

    def test_only_injected_parameter_annotations_are_evaluated(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(TypeCheckingOnlyReturnComponent)

        assert plan.dependencies == (Dependency, AnotherDependency)

    def test_unresolvable_inject_field_fails(self, plan_deriver: ConstructionPlanDeriver) -> None:
        with pytest.raises(
            DependencyInferenceError,
            match="'TypeCheckingOnlyInjectFieldComponent.rate'",
        ):
            plan_deriver.derive(TypeCheckingOnlyInjectFieldComponent)

    def test_unresolvable_injected_parameter_fails(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        with pytest.raises(DependencyInferenceError, match="parameter 'rate'"):
            plan_deriver.derive(TypeCheckingOnlyParameterComponent)


class TestConstructionPlan:
    def test_dependencies_follow_initializer_field_method_order_without_repeats(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        plan = plan_deriver.derive(MixedInjectionComponent)

        assert plan.dependencies == (Dependency, AnotherDependency)

    def test_plan_is_immutable(self, plan_deriver: ConstructionPlanDeriver) -> None:
        plan = plan_deriver.derive(MixedInjectionComponent)

        with pytest.raises(AttributeError):
            plan.fields = ()  # type: ignore[misc]

    def test_build_resolves_every_key_through_callback(
        self,
        plan_deriver: ConstructionPlanDeriver,
    ) -> None:
        dependency = Dependency()
        another = AnotherDependency()
        values: dict[Any, Any] = {Dependency: dependency, AnotherDependency: another}
        plan: ConstructionPlan = plan_deriver.derive(MixedInjectionComponent)

        instance = plan.build(values.__getitem__)

        assert isinstance(instance, MixedInjectionComponent)
        assert instance.dependency is dependency
        assert instance.shared is dependency
        assert instance.another is another
