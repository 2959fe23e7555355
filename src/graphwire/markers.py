from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Final,
    TypeVar,
    Union,
    get_args,
    get_origin,
    overload,
)

from typing_extensions import Self

T = TypeVar("T")
MarkedT = TypeVar("MarkedT")

_INJECT_ATTRIBUTE = "__graphwire_inject__"
_IMMUTABLE_QUALIFIERS: tuple[Any, ...] = (Final, ClassVar)


class InjectMarker:
    """A marker stored in ``Annotated`` metadata for fields filled after construction."""

    def __repr__(self) -> str:
        return "InjectMarker()"


@dataclass(frozen=True, slots=True)
class InjectionMetadata:
    """Metadata attached to an ``@inject``-decorated initializer, method, or class."""

    dependencies: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    """Explicit dependency keys by parameter name, overriding annotations."""


if TYPE_CHECKING:
    Inject = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class-level field for injection after the instance is built.

    At runtime ``Inject[T]`` becomes ``Annotated[T, InjectMarker()]``.
    """
else:

    class Inject:
        """Mark a class-level field for injection after the instance is built.

        Usage:
            class Service:
                repository: Inject[Repository]

        At runtime ``Inject[T]`` resolves to ``Annotated[T, InjectMarker()]``.
        Wrapping the field in ``Final`` or ``ClassVar`` makes it immutable and
        is rejected at binding time.
        """

        def __new__(cls, *_args: object, **_kwargs: object) -> Self:
            """Prevent instantiation; use Inject[T] instead."""
            msg = "Inject cannot be instantiated; annotate fields with Inject[T] instead."
            raise TypeError(msg)

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return _build_annotated((inner, *metadata, InjectMarker()))
            return _build_annotated((item, InjectMarker()))


@overload
def inject(target: MarkedT, /) -> MarkedT: ...


@overload
def inject(target: None = None, /, **dependencies: Any) -> Callable[[MarkedT], MarkedT]: ...


def inject(
    target: MarkedT | None = None,
    /,
    **dependencies: Any,
) -> MarkedT | Callable[[MarkedT], MarkedT]:
    """Mark an initializer, alternative constructor, method, or class for injection.

    ``@inject`` on ``__init__`` (or on the class itself, for generated
    initializers such as dataclasses) selects the initializer used to build
    instances. On a ``classmethod`` or ``staticmethod`` it selects that
    alternative constructor instead. On any other method it requests a call
    right after construction, with every parameter resolved.

    Keyword arguments map parameter names to explicit dependency keys and take
    precedence over annotations.

    Examples:
        .. code-block:: python

            class Service:
                @inject
                def __init__(self, repository: Repository) -> None:
                    self.repository = repository

                @inject(clock=SystemClock)
                def start(self, clock: Clock) -> None:
                    self.started_at = clock.now()

    """
    metadata = InjectionMetadata(dependencies=MappingProxyType(dict(dependencies)))

    def decorator(marked: MarkedT) -> MarkedT:
        carrier = _marker_carrier(marked)
        if not callable(carrier):
            msg = f"@inject expects a class or a function, got {marked!r}."
            raise TypeError(msg)
        setattr(carrier, _INJECT_ATTRIBUTE, metadata)
        return marked

    if target is None:
        return decorator
    return decorator(target)


def get_injection_metadata(member: Any) -> InjectionMetadata | None:
    """Return the ``@inject`` metadata of a function or class member, if marked."""
    carrier = _marker_carrier(member)
    if isinstance(carrier, type):
        # Class markers are not inherited by subclasses.
        return vars(carrier).get(_INJECT_ATTRIBUTE)
    return getattr(carrier, _INJECT_ATTRIBUTE, None)


def unwrap_field_annotation(annotation: Any) -> tuple[Any, bool, bool]:
    """Split a field annotation into ``(key, is_injected, is_immutable)``.

    ``Annotated`` metadata is dropped from the key; ``Final`` and ``ClassVar``
    wrappers at any nesting level mark the field as immutable.
    """
    is_injected = False
    is_immutable = False
    current = annotation
    while True:
        origin = get_origin(current)
        if origin is Annotated:
            args = get_args(current)
            is_injected = is_injected or any(isinstance(item, InjectMarker) for item in args[1:])
            current = args[0]
        elif origin in _IMMUTABLE_QUALIFIERS or current in _IMMUTABLE_QUALIFIERS:
            is_immutable = True
            args = get_args(current)
            if not args:
                break
            current = args[0]
        else:
            break
    return current, is_injected, is_immutable


def strip_annotated(annotation: Any) -> Any:
    """Return ``annotation`` without any ``Annotated`` wrappers."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def _marker_carrier(member: Any) -> Any:
    if isinstance(member, (classmethod, staticmethod)):
        return member.__func__
    return member


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
