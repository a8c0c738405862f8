import logging
from contextlib import contextmanager
from inspect import isfunction
from typing import Any, Dict, Iterator, List, Optional

import orjson
from beartype.roar import BeartypeCallHintParamViolation

from himmel.error import ParseError, SchemaError
from himmel.model.result_model import AnalysisResult
from himmel.service.serialization.pjson_types import PJSONType
from himmel.service.serialization.serializers import default_serializers
from himmel.service.serialization.serializers.serializer_i import SerializerInterface

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TYPE_DEPTH = 32


class ResultSerializationService:
    """
    Service handling the conversion between the engine's JSON output and the typed result model,
    through an intermediate JSON-compatible Python type named PJSON (for "proto-JSON").

    In this model, decoding happens in two stages: JSON (string) to PJSON with orjson, then PJSON
    to the typed object, validating the shape against the type hints on the way. Encoding is the
    reverse. Both directions are exact inverses on valid models: `from_json(to_json(x)) == x`.

    Supported type hints: the result model dataclasses, `List`/`Sequence`, `Optional`/`Union`,
    `Enum` subclasses, `str`, `float`, `bool`, `None`, `int` and its fixed-width aliases.
    """

    def __init__(
        self,
        serializers: Optional[List[SerializerInterface]] = None,
        max_type_depth: int = DEFAULT_MAX_TYPE_DEPTH,
    ):
        if serializers is None:
            serializers = default_serializers()
        self._serializers = serializers
        for serializer in self._serializers:
            # This class requires the custom serializers, and the custom serializers require this class.
            setattr(serializer, "_service", self)
        self._max_type_depth = max_type_depth

        # Used to cache results of serializer discovery
        self._cached_type_to_serializer_mapping: Dict[Any, SerializerInterface] = {}
        # Traversal state of the conversion in progress
        self._location: List[str] = []
        self._active_type_nodes: List[int] = []

    def parse_result(self, raw_result: str) -> AnalysisResult:
        """
        Decode and validate the engine's JSON output.

        :raises ParseError: if `raw_result` is not valid JSON
        :raises SchemaError: if the JSON does not have the shape of an `AnalysisResult`
        """
        try:
            pjson_obj = self.loads(raw_result)
        except orjson.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON from engine: {e}") from e
        return self.from_pjson(pjson_obj, AnalysisResult)

    def to_pjson(self, obj: Any, type_hint: Any) -> PJSONType:
        serializer = self._get_serializer(type_hint)
        return serializer.obj_to_pjson(obj, type_hint)

    def from_pjson(self, pjson_obj: PJSONType, type_hint: Any, location: str = "") -> Any:
        """
        Opposite of `to_pjson`. `location` names the key or index `pjson_obj` was found at, and is
        used to point at the offending value in schema errors.
        """
        if location:
            self._location.append(location)
        try:
            serializer = self._get_serializer(type_hint)
            try:
                return serializer.pjson_to_obj(pjson_obj, type_hint)
            except BeartypeCallHintParamViolation:
                raise self.schema_error(
                    f"expected {self.describe(type_hint)}, got {self.describe(type(pjson_obj))}"
                ) from None
        finally:
            if location:
                self._location.pop()

    def dumps(self, pjson_obj: PJSONType, indent: bool = False) -> str:
        """Wrapper around the dumping method of the JSON library used."""
        option = orjson.OPT_INDENT_2 if indent else None
        return orjson.dumps(pjson_obj, option=option).decode("utf-8")

    def loads(self, json_obj: str) -> PJSONType:
        """Wrapper around the loading method of the JSON library used."""
        return orjson.loads(json_obj)

    def to_json(self, obj: Any, type_hint: Any, indent: bool = False) -> str:
        return self.dumps(self.to_pjson(obj, type_hint), indent=indent)

    def from_json(self, json_obj: str, type_hint: Any) -> Any:
        return self.from_pjson(self.loads(json_obj), type_hint)

    @contextmanager
    def visit_type_node(self, node: Any) -> Iterator[None]:
        """
        Track `node` as part of the type tree currently being converted.

        :raises SchemaError: if `node` is already one of its own ancestors, or if the tree is
        nested deeper than the configured maximum
        """
        node_id = id(node)
        if node_id in self._active_type_nodes:
            raise self.schema_error("type graph contains a cycle")
        if len(self._active_type_nodes) >= self._max_type_depth:
            raise self.schema_error(f"type nesting exceeds {self._max_type_depth} levels")
        self._active_type_nodes.append(node_id)
        try:
            yield
        finally:
            self._active_type_nodes.pop()

    def schema_error(self, message: str) -> SchemaError:
        location = self._format_location()
        if location:
            return SchemaError(f"{location}: {message}")
        return SchemaError(message)

    @staticmethod
    def describe(type_hint: Any) -> str:
        if type_hint is type(None):
            return "null"
        return getattr(type_hint, "__name__", str(type_hint))

    def _format_location(self) -> str:
        formatted = ""
        for part in self._location:
            if part.startswith("[") or not formatted:
                formatted += part
            else:
                formatted += f".{part}"
        return formatted

    def _get_serializer(self, type_hint: Any) -> SerializerInterface:
        """Return the first serializer/deserializer pair found for `type_hint`."""
        # Has this type already been seen?
        try:
            return self._cached_type_to_serializer_mapping[type_hint]
        except (KeyError, TypeError):
            pass
        # First pass: `targets` as explicit types have priority over predicates
        for serializer in self._serializers:
            for target in serializer.targets:
                if not isfunction(target) and target == type_hint:
                    self._cache_serializer(type_hint, serializer)
                    return serializer
        # Second pass: if the type hint didn't correspond to any explicit type, try predicates
        for serializer in self._serializers:
            for target in serializer.targets:
                if isfunction(target) and target(type_hint) is True:
                    self._cache_serializer(type_hint, serializer)
                    return serializer
        raise TypeError(f"Unrecognized type hint {type_hint}")

    def _cache_serializer(self, type_hint: Any, serializer: SerializerInterface) -> None:
        try:
            self._cached_type_to_serializer_mapping[type_hint] = serializer
        except TypeError:
            LOGGER.debug(f"Type hint {type_hint} is unhashable, not caching its serializer")
