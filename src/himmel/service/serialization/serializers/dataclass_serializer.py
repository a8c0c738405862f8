import inspect
from dataclasses import MISSING, fields, is_dataclass
from typing import Any, Dict, get_type_hints

from beartype import beartype
from typing_inspect import is_optional_type

from himmel.service.serialization.pjson_types import PJSONType
from himmel.service.serialization.serializers.serializer_i import SerializerInterface


def is_dataclass_type(type_hint):
    return inspect.isclass(type_hint) and is_dataclass(type_hint)


class DataclassSerializer(SerializerInterface):
    """
    Serialize and deserialize dataclass instances into `PJSONType`.

    Implementation: an instance is serialized as a JSON object whose keys are the names of the
    dataclass fields, in declaration order. This is the exact key layout of the engine's output.

    When deserializing, a missing key is accepted if the field is Optional (it becomes `None`) or
    has a default; any other missing key is a schema error. Keys that don't correspond to a field
    are ignored.
    """

    targets = (is_dataclass_type,)

    def __init__(self):
        self._cached_field_types: Dict[type, Dict[str, Any]] = {}

    def obj_to_pjson(self, obj: Any, type_hint: Any) -> Dict[str, PJSONType]:
        return {
            field_name: self._service.to_pjson(getattr(obj, field_name), field_type)
            for field_name, field_type in self._get_field_types(type(obj)).items()
        }

    @beartype
    def pjson_to_obj(self, pjson_obj: Dict[str, Any], type_hint: Any) -> Any:
        return type_hint(**self._deserialize_fields(pjson_obj, type_hint))

    def _deserialize_fields(self, pjson_obj: Dict[str, Any], cls: type) -> Dict[str, Any]:
        field_types = self._get_field_types(cls)
        kwargs = {}
        for cls_field in fields(cls):
            if not cls_field.init:
                continue
            field_type = field_types[cls_field.name]
            if cls_field.name in pjson_obj:
                kwargs[cls_field.name] = self._service.from_pjson(
                    pjson_obj[cls_field.name], field_type, location=cls_field.name
                )
            elif is_optional_type(field_type):
                kwargs[cls_field.name] = None
            elif cls_field.default is MISSING and cls_field.default_factory is MISSING:  # type: ignore
                raise self._service.schema_error(f"missing required field '{cls_field.name}'")
        return kwargs

    def _get_field_types(self, cls: type) -> Dict[str, Any]:
        try:
            return self._cached_field_types[cls]
        except KeyError:
            pass
        # Resolves the forward references of recursive types, e.g. List["MemberInfo"]
        type_hints = get_type_hints(cls)
        field_types = {
            cls_field.name: type_hints[cls_field.name] for cls_field in fields(cls) if cls_field.init
        }
        self._cached_field_types[cls] = field_types
        return field_types
