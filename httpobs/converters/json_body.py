from __future__ import annotations

import dataclasses
import inspect
import typing
from threading import Lock
from typing import Any, Callable

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticUserError
from pydantic_core import PydanticSerializationError

from httpobs.observation.errors import ConverterError, MessageNotReadableError, MessageNotWritableError

DEFAULT_CHARSET = "utf-8"


class SerializerCache:
    """Read-through cache from a type to its resolved ``TypeAdapter``.

    Each distinct type is resolved at most once and entries live as long as the
    cache. A factory result of ``None`` (type not supported) is not cached.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[Any, TypeAdapter[Any]] = {}

    def get_or_create(self, tp: Any, factory: Callable[[Any], TypeAdapter[Any] | None]) -> TypeAdapter[Any] | None:
        try:
            hash(tp)
        except TypeError:
            return factory(tp)

        adapter = self._entries.get(tp)
        if adapter is not None:
            return adapter
        with self._lock:
            adapter = self._entries.get(tp)
            if adapter is None:
                adapter = factory(tp)
                if adapter is not None:
                    self._entries[tp] = adapter
        return adapter

    def __contains__(self, tp: object) -> bool:
        return tp in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _node_name(tp: Any) -> str:
    if isinstance(tp, type):
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp)


def _is_open(tp: Any) -> bool:
    if tp is Any or tp is object:
        return True
    if not isinstance(tp, type):
        return False
    return inspect.isabstract(tp) or bool(getattr(tp, "_is_protocol", False))


def _component_types(tp: Any) -> list[Any]:
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return [field.annotation for field in tp.model_fields.values()]
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        try:
            hints = typing.get_type_hints(tp)
        except (NameError, TypeError):
            hints = {}
        return [hints.get(f.name, f.type) for f in dataclasses.fields(tp)]
    return list(typing.get_args(tp))


def has_open_polymorphism(tp: Any) -> bool:
    """Depth-first search for a component that cannot be bound to one concrete type.

    ``Any``, ``object``, abstract classes and protocols count as open. Nodes are
    visited once by qualified name, so self-referential models terminate.
    """

    visited: set[str] = set()
    stack = [tp]
    while stack:
        node = stack.pop()
        name = _node_name(node)
        if name in visited:
            continue
        visited.add(name)
        if _is_open(node):
            return True
        stack.extend(_component_types(node))
    return False


def _media_type_supported(media_type: str | None) -> bool:
    if media_type is None:
        return True
    main = media_type.split(";", 1)[0].strip().lower()
    if main in ("application/json", "*/*", "application/*"):
        return True
    return main.startswith("application/") and main.endswith("+json")


def _charset(content_type: str | None) -> str:
    if not content_type:
        return DEFAULT_CHARSET
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return DEFAULT_CHARSET


class JsonBodyConverter:
    """Reads and writes JSON bodies for closed (non-polymorphic) types."""

    def __init__(self, cache: SerializerCache | None = None) -> None:
        self.cache = cache if cache is not None else SerializerCache()

    def adapter_for(self, tp: Any) -> TypeAdapter[Any] | None:
        return self.cache.get_or_create(tp, self._resolve)

    @staticmethod
    def _resolve(tp: Any) -> TypeAdapter[Any] | None:
        if has_open_polymorphism(tp):
            return None
        try:
            return TypeAdapter(tp)
        except (PydanticUserError, TypeError):
            return None

    def can_read(self, tp: Any, media_type: str | None = None) -> bool:
        return _media_type_supported(media_type) and self.adapter_for(tp) is not None

    def can_write(self, tp: Any, media_type: str | None = None) -> bool:
        return _media_type_supported(media_type) and self.adapter_for(tp) is not None

    def _require_adapter(self, tp: Any) -> TypeAdapter[Any]:
        adapter = self.adapter_for(tp)
        if adapter is None:
            raise ConverterError(f"No JSON serializer for type {_node_name(tp)}")
        return adapter

    def read(self, tp: Any, body: bytes, content_type: str | None = None) -> Any:
        adapter = self._require_adapter(tp)
        try:
            text = body.decode(_charset(content_type))
            return adapter.validate_json(text)
        except (ValidationError, UnicodeDecodeError, LookupError) as exc:
            raise MessageNotReadableError(f"Could not read JSON: {exc}") from exc

    def write(self, obj: Any, tp: Any = None, content_type: str | None = None) -> bytes:
        adapter = self._require_adapter(tp if tp is not None else type(obj))
        try:
            text = adapter.dump_json(obj).decode("utf-8")
            return text.encode(_charset(content_type))
        except (PydanticSerializationError, UnicodeEncodeError, LookupError) as exc:
            raise MessageNotWritableError(f"Could not write JSON: {exc}") from exc
