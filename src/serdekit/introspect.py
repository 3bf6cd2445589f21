"""Property introspection with a process-wide, write-once cache.

Reflection over a type happens at most once per published result; afterwards
every caller receives the same immutable tuple of descriptors.
"""

from __future__ import annotations

from collections.abc import Callable  # noqa: TC003 - used at runtime in dataclass
import dataclasses
from dataclasses import dataclass
import inspect
import logging
from operator import attrgetter
import threading
import typing
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], None]


@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    """A public instance property of a type, in declaration order."""

    name: str
    declared_type: Any
    getter: Getter
    setter: Setter | None = None

    def get(self, obj: Any) -> Any:
        """Read this property from *obj*."""
        return self.getter(obj)

    @property
    def writable(self) -> bool:
        return self.setter is not None


def _setter_for(name: str) -> Setter:
    def _set(obj: Any, value: Any) -> None:
        setattr(obj, name, value)

    return _set


def _is_public(name: str) -> bool:
    return not name.startswith("_")


def _is_pydantic_model(tp: type) -> bool:
    return isinstance(tp, type) and issubclass(tp, BaseModel)


def _type_hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj)
    except Exception:
        # Unresolvable forward references: fall back to raw annotations.
        return dict(getattr(obj, "__annotations__", {}) or {})


def _reflect_dataclass(tp: type) -> list[PropertyDescriptor]:
    hints = _type_hints(tp)
    frozen = tp.__dataclass_params__.frozen  # type: ignore[attr-defined]
    return [
        PropertyDescriptor(
            name=f.name,
            declared_type=hints.get(f.name, Any),
            getter=attrgetter(f.name),
            setter=None if frozen else _setter_for(f.name),
        )
        for f in dataclasses.fields(tp)
        if _is_public(f.name)
    ]


def _reflect_pydantic(tp: type[BaseModel]) -> list[PropertyDescriptor]:
    frozen = bool(tp.model_config.get("frozen"))
    return [
        PropertyDescriptor(
            name=name,
            declared_type=info.annotation if info.annotation is not None else Any,
            getter=attrgetter(name),
            setter=None if frozen else _setter_for(name),
        )
        for name, info in tp.model_fields.items()
        if _is_public(name)
    ]


def _reflect_plain(tp: type) -> list[PropertyDescriptor]:
    descriptors: list[PropertyDescriptor] = []
    seen: set[str] = set()

    for name, hint in _type_hints(tp).items():
        if not _is_public(name) or typing.get_origin(hint) is typing.ClassVar:
            continue
        seen.add(name)
        descriptors.append(
            PropertyDescriptor(name, hint, attrgetter(name), _setter_for(name))
        )

    for klass in reversed(tp.__mro__):
        for name, value in vars(klass).items():
            if not isinstance(value, property) or not _is_public(name):
                continue
            if name in seen:
                continue
            seen.add(name)
            declared = _type_hints(value.fget).get("return", Any) if value.fget else Any
            descriptors.append(
                PropertyDescriptor(
                    name,
                    declared,
                    attrgetter(name),
                    _setter_for(name) if value.fset is not None else None,
                )
            )

    if descriptors:
        return descriptors

    # No declared surface: use the public constructor parameters.
    if tp.__init__ is object.__init__:
        return []
    try:
        params = inspect.signature(tp.__init__).parameters
    except (TypeError, ValueError):
        return []
    hints = _type_hints(tp.__init__)
    return [
        PropertyDescriptor(
            p.name, hints.get(p.name, Any), attrgetter(p.name), _setter_for(p.name)
        )
        for p in list(params.values())[1:]
        if _is_public(p.name)
        and p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    ]


def reflect_properties(tp: type) -> tuple[PropertyDescriptor, ...]:
    """Reflect over *tp* without consulting the cache."""
    if dataclasses.is_dataclass(tp):
        found = _reflect_dataclass(tp)
    elif _is_pydantic_model(tp):
        found = _reflect_pydantic(tp)
    else:
        found = _reflect_plain(tp)
    return tuple(found)


class PropertyIntrospector:
    """Type → descriptors memoization table.

    Concurrent callers may both reflect an uncached type, but only the first
    result is published and every caller receives that published tuple.
    Entries are never evicted.
    """

    def __init__(self) -> None:
        self._cache: dict[type, tuple[PropertyDescriptor, ...]] = {}
        self._lock = threading.Lock()

    def get_properties(self, tp: type) -> tuple[PropertyDescriptor, ...]:
        cached = self._cache.get(tp)
        if cached is not None:
            return cached

        computed = reflect_properties(tp)
        with self._lock:
            published = self._cache.setdefault(tp, computed)
        if published is computed:
            logger.debug(
                "Cached %d properties for %s", len(computed), tp.__qualname__
            )
        return published

    def __contains__(self, tp: object) -> bool:
        return tp in self._cache

    def __len__(self) -> int:
        return len(self._cache)


#: Process-wide introspector shared by the CSV, XML and diagnostics paths.
introspector = PropertyIntrospector()


def get_properties(tp: type) -> tuple[PropertyDescriptor, ...]:
    """Return the cached, ordered public properties of *tp*."""
    return introspector.get_properties(tp)


def build_instance(tp: type, values: dict[str, Any]) -> Any:
    """Create an instance of *tp* populated from a name → value mapping.

    Dataclasses and pydantic models are constructed by keyword; other types
    are default-constructed and populated through property setters, falling
    back to keyword construction when no default constructor exists.
    """
    if _is_pydantic_model(tp):
        return tp(**values)

    if dataclasses.is_dataclass(tp):
        init_names = {f.name for f in dataclasses.fields(tp) if f.init}
        obj = tp(**{k: v for k, v in values.items() if k in init_names})
        remaining = {k: v for k, v in values.items() if k not in init_names}
    else:
        try:
            obj = tp()
        except TypeError:
            return tp(**values)
        remaining = values

    for prop in get_properties(tp):
        if prop.name in remaining and prop.setter is not None:
            prop.setter(obj, remaining[prop.name])
    return obj
