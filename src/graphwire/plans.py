from __future__ import annotations

import dataclasses
import inspect
import re
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from inspect import Parameter
from typing import Any

from graphwire.exceptions import (
    AmbiguousInjectionError,
    DependencyInferenceError,
    ImmutableInjectionTargetError,
    NotInstantiableError,
)
from graphwire.markers import (
    InjectionMetadata,
    get_injection_metadata,
    strip_annotated,
    unwrap_field_annotation,
)

_INITIALIZER_NAME = "__init__"
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)
_POSITIONAL_KINDS = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
_INJECT_REFERENCE = re.compile(r"\bInject\b")
_UNRESOLVED = object()


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    """A single parameter filled from the resolver."""

    key: Any
    parameter: Parameter


@dataclass(frozen=True, slots=True)
class InitializerInjection:
    """The callable that builds the bare instance and the keys it needs."""

    name: str
    """``__init__`` or the name of the selected alternative constructor."""
    factory: Callable[..., Any]
    """The class itself, or the bound alternative constructor."""
    points: tuple[InjectionPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class FieldInjection:
    """A mutable instance field assigned after construction."""

    key: Any
    name: str
    owner: type[Any]
    """The class whose annotation declares the field."""


@dataclass(frozen=True, slots=True)
class MethodInjection:
    """A method invoked once after construction and field injection."""

    name: str
    owner: type[Any]
    """The most-derived class defining the method body that runs."""
    function: Callable[..., Any]
    points: tuple[InjectionPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class ConstructionPlan:
    """An immutable description of how to build and wire one implementation type."""

    implementation: type[Any]
    initializer: InitializerInjection
    fields: tuple[FieldInjection, ...] = ()
    methods: tuple[MethodInjection, ...] = ()
    dependencies: tuple[Any, ...] = field(init=False)
    """Every key required by the initializer, fields, and methods, without repeats."""

    def __post_init__(self) -> None:
        keys = [point.key for point in self.initializer.points]
        keys.extend(field_injection.key for field_injection in self.fields)
        for method in self.methods:
            keys.extend(point.key for point in method.points)
        object.__setattr__(self, "dependencies", tuple(dict.fromkeys(keys)))

    def build(self, resolve: Callable[[Any], Any]) -> Any:
        """Construct a fresh, fully wired instance using ``resolve`` for every key."""
        args, kwargs = _call_arguments(self.initializer.points, resolve)
        instance = self.initializer.factory(*args, **kwargs)

        for field_injection in self.fields:
            setattr(instance, field_injection.name, resolve(field_injection.key))

        for method in self.methods:
            args, kwargs = _call_arguments(method.points, resolve)
            method.function(instance, *args, **kwargs)

        return instance


@dataclass(slots=True)
class ConstructionPlanDeriver:
    """Derives construction plans from implementation classes at binding time."""

    def derive(self, implementation: Any) -> ConstructionPlan:
        """Inspect ``implementation`` and return its plan, or fail deterministically.

        Raises:
            NotInstantiableError: If the type is not a concrete class or has no
                usable initializer.
            AmbiguousInjectionError: If more than one initializer is marked.
            ImmutableInjectionTargetError: If a marked field is immutable.
            DependencyInferenceError: If a parameter has no derivable key.

        """
        self._validate_implementation(implementation)
        initializer = self._select_initializer(implementation)
        ancestors = _ancestors(implementation)
        return ConstructionPlan(
            implementation=implementation,
            initializer=initializer,
            fields=self._collect_fields(implementation, ancestors),
            methods=self._collect_methods(implementation, ancestors),
        )

    def _validate_implementation(self, implementation: Any) -> None:
        if not inspect.isclass(implementation):
            raise NotInstantiableError(implementation, "implementation must be a class")
        if getattr(implementation, "_is_protocol", False):
            raise NotInstantiableError(implementation, "protocols cannot be instantiated")
        if inspect.isabstract(implementation):
            raise NotInstantiableError(implementation, "abstract classes cannot be instantiated")

    def _select_initializer(self, implementation: type[Any]) -> InitializerInjection:
        init_owner = _defining_class(implementation, _INITIALIZER_NAME)
        init_function = vars(init_owner)[_INITIALIZER_NAME]
        candidates: list[tuple[str, Callable[..., Any], InjectionMetadata, bool]] = []

        init_metadata = get_injection_metadata(init_function)
        if init_metadata is None:
            # A class-level @inject applies to the initializer that class inherits.
            for klass in implementation.__mro__:
                class_metadata = get_injection_metadata(klass)
                if class_metadata is not None or klass is init_owner:
                    init_metadata = class_metadata
                    break
        if init_metadata is not None:
            candidates.append((_INITIALIZER_NAME, init_function, init_metadata, True))

        for name, member in _most_derived_members(implementation):
            if not isinstance(member, (classmethod, staticmethod)):
                continue
            metadata = get_injection_metadata(member)
            if metadata is not None:
                is_classmethod = isinstance(member, classmethod)
                candidates.append((name, member.__func__, metadata, is_classmethod))

        if len(candidates) > 1:
            names = [candidate[0] for candidate in candidates]
            raise AmbiguousInjectionError(implementation, names)

        if not candidates:
            self._ensure_callable_without_arguments(implementation, init_owner, init_function)
            return InitializerInjection(name=_INITIALIZER_NAME, factory=implementation)

        name, function, metadata, skip_first_parameter = candidates[0]
        points = self._injection_points(
            implementation,
            function=function,
            metadata=metadata,
            skip_first_parameter=skip_first_parameter,
        )
        factory = implementation if name == _INITIALIZER_NAME else getattr(implementation, name)
        return InitializerInjection(name=name, factory=factory, points=points)

    def _ensure_callable_without_arguments(
        self,
        implementation: type[Any],
        init_owner: type[Any],
        init_function: Any,
    ) -> None:
        if init_owner is object:
            return
        try:
            parameters = tuple(inspect.signature(init_function).parameters.values())[1:]
        except (TypeError, ValueError):
            # Builtin initializers without an introspectable signature.
            return
        required = [
            parameter.name
            for parameter in parameters
            if parameter.default is Parameter.empty and parameter.kind not in _VARIADIC_KINDS
        ]
        if required:
            names = ", ".join(f"'{name}'" for name in required)
            reason = f"no @inject initializer and '__init__' requires arguments {names}"
            raise NotInstantiableError(implementation, reason)

    def _collect_fields(
        self,
        implementation: type[Any],
        ancestors: tuple[type[Any], ...],
    ) -> tuple[FieldInjection, ...]:
        dataclass_params = getattr(implementation, "__dataclass_params__", None)
        is_frozen = dataclasses.is_dataclass(implementation) and bool(
            getattr(dataclass_params, "frozen", False),
        )
        seen: set[str] = set()
        fields: list[FieldInjection] = []

        for klass in ancestors:
            for name, annotation in self._class_annotations(implementation, klass).items():
                if name in seen:
                    continue
                seen.add(name)
                evaluated = self._field_annotation(implementation, klass, name, annotation)
                if evaluated is _UNRESOLVED:
                    continue
                key, is_injected, is_immutable = unwrap_field_annotation(evaluated)
                if not is_injected:
                    continue
                if is_immutable or is_frozen:
                    raise ImmutableInjectionTargetError(implementation, name)
                fields.append(FieldInjection(key=key, name=name, owner=klass))

        return tuple(fields)

    def _collect_methods(
        self,
        implementation: type[Any],
        ancestors: tuple[type[Any], ...],
    ) -> tuple[MethodInjection, ...]:
        # Nearest marked declaration per name, most-derived first.
        marked: dict[str, InjectionMetadata] = {}
        for klass in ancestors:
            for name, member in vars(klass).items():
                if name == _INITIALIZER_NAME or name in marked or not inspect.isfunction(member):
                    continue
                metadata = get_injection_metadata(member)
                if metadata is not None:
                    marked[name] = metadata

        # One entry per name, ordered by the base-most declaring class.
        ordered_names: list[str] = []
        for klass in reversed(ancestors):
            ordered_names.extend(
                name for name in vars(klass) if name in marked and name not in ordered_names
            )

        methods: list[MethodInjection] = []
        for name in ordered_names:
            owner = _defining_class(implementation, name)
            function = vars(owner)[name]
            if not inspect.isfunction(function):
                reason = f"injection method '{name}' is overridden by a non-function attribute"
                raise NotInstantiableError(implementation, reason)
            points = self._injection_points(
                implementation,
                function=function,
                metadata=marked[name],
                skip_first_parameter=True,
            )
            methods.append(
                MethodInjection(name=name, owner=owner, function=function, points=points),
            )

        return tuple(methods)

    def _injection_points(
        self,
        implementation: type[Any],
        *,
        function: Callable[..., Any],
        metadata: InjectionMetadata,
        skip_first_parameter: bool,
    ) -> tuple[InjectionPoint, ...]:
        parameters = tuple(inspect.signature(function).parameters.values())
        if skip_first_parameter:
            parameters = parameters[1:]
        parameters = tuple(
            parameter for parameter in parameters if parameter.kind not in _VARIADIC_KINDS
        )
        function_name = getattr(function, "__qualname__", repr(function))

        explicit = dict(metadata.dependencies)
        unknown = sorted(set(explicit) - {parameter.name for parameter in parameters})
        if unknown:
            names = ", ".join(f"'{name}'" for name in unknown)
            reason = f"explicit dependencies name unknown parameters {names} of '{function_name}'"
            raise DependencyInferenceError(implementation, reason)

        inferred = [parameter.name for parameter in parameters if parameter.name not in explicit]
        hints: dict[str, Any] = {}
        if inferred:
            hints = self._function_hints(implementation, function, function_name, inferred)

        points: list[InjectionPoint] = []
        for parameter in parameters:
            if parameter.name in explicit:
                key = explicit[parameter.name]
            elif parameter.name in hints:
                key = hints[parameter.name]
            else:
                reason = (
                    f"parameter '{parameter.name}' of '{function_name}' has no type annotation; "
                    "annotate it or pass an explicit key to @inject"
                )
                raise DependencyInferenceError(implementation, reason)
            points.append(InjectionPoint(key=key, parameter=parameter))

        return tuple(points)

    def _function_hints(
        self,
        implementation: type[Any],
        function: Callable[..., Any],
        function_name: str,
        names: Iterable[str],
    ) -> dict[str, Any]:
        """Evaluate the annotations of ``names`` only, leaving the rest untouched."""
        try:
            annotations = inspect.get_annotations(function)
        except (AttributeError, NameError, TypeError) as error:
            reason = f"annotations of '{function_name}' cannot be evaluated ({error})"
            raise DependencyInferenceError(implementation, reason) from error
        globalns = getattr(inspect.unwrap(function), "__globals__", {})

        hints: dict[str, Any] = {}
        for name in names:
            if name not in annotations:
                continue
            try:
                hint = _evaluate_annotation(annotations[name], globalns, None)
            except (AttributeError, NameError, SyntaxError, TypeError) as error:
                reason = (
                    f"annotation of parameter '{name}' of '{function_name}' "
                    f"cannot be evaluated ({error})"
                )
                raise DependencyInferenceError(implementation, reason) from error
            hints[name] = type(None) if hint is None else strip_annotated(hint)
        return hints

    def _class_annotations(self, implementation: type[Any], klass: type[Any]) -> dict[str, Any]:
        try:
            return inspect.get_annotations(klass)
        except (AttributeError, NameError, TypeError) as error:
            reason = f"annotations of '{klass.__qualname__}' cannot be evaluated ({error})"
            raise DependencyInferenceError(implementation, reason) from error

    def _field_annotation(
        self,
        implementation: type[Any],
        klass: type[Any],
        name: str,
        annotation: Any,
    ) -> Any:
        """Evaluate one class-level annotation, or return ``_UNRESOLVED`` for plain fields.

        Only annotations that mention ``Inject`` must evaluate. Plain fields may
        refer to names that exist for type checkers only.
        """
        module = sys.modules.get(klass.__module__)
        globalns = vars(module) if module is not None else {}
        try:
            return _evaluate_annotation(annotation, globalns, dict(vars(klass)))
        except (AttributeError, NameError, SyntaxError, TypeError) as error:
            if not _INJECT_REFERENCE.search(annotation):
                return _UNRESOLVED
            reason = (
                f"annotation of field '{klass.__qualname__}.{name}' "
                f"cannot be evaluated ({error})"
            )
            raise DependencyInferenceError(implementation, reason) from error


def _evaluate_annotation(
    annotation: Any,
    globalns: dict[str, Any],
    localns: dict[str, Any] | None,
) -> Any:
    # Postponed annotations are evaluated the way inspect.get_annotations(eval_str=True) does.
    if not isinstance(annotation, str):
        return annotation
    return eval(annotation, globalns, localns)  # noqa: S307


def _ancestors(implementation: type[Any]) -> tuple[type[Any], ...]:
    return tuple(klass for klass in implementation.__mro__ if klass is not object)


def _defining_class(implementation: type[Any], name: str) -> type[Any]:
    return next(klass for klass in implementation.__mro__ if name in vars(klass))


def _most_derived_members(implementation: type[Any]) -> Iterable[tuple[str, Any]]:
    seen: set[str] = set()
    for klass in _ancestors(implementation):
        for name, member in vars(klass).items():
            if name not in seen:
                seen.add(name)
                yield name, member


def _call_arguments(
    points: tuple[InjectionPoint, ...],
    resolve: Callable[[Any], Any],
) -> tuple[list[Any], dict[str, Any]]:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for point in points:
        value = resolve(point.key)
        if point.parameter.kind in _POSITIONAL_KINDS:
            args.append(value)
        else:
            kwargs[point.parameter.name] = value
    return args, kwargs
