import inspect
from enum import Enum
from typing import Any

from beartype import beartype

from himmel.service.serialization.serializers.serializer_i import SerializerInterface


def is_enum(type_hint):
    return inspect.isclass(type_hint) and issubclass(type_hint, Enum)


class EnumSerializer(SerializerInterface):
    """
    Serialize and deserialize enum.Enum instances into `PJSONType`.

    Implementation: an instance is serialized as its value, which is the tag the engine emits
    (e.g. `"struct"` for `TypeKind.STRUCT`).
    """

    targets = (is_enum,)

    def obj_to_pjson(self, enum_instance: Enum, _type_hint: Any) -> Any:
        return enum_instance.value

    @beartype
    def pjson_to_obj(self, pjson_obj: str, type_hint: Any) -> Enum:
        try:
            return type_hint(pjson_obj)
        except ValueError:
            accepted = ", ".join(repr(member.value) for member in type_hint)
            raise self._service.schema_error(
                f"{pjson_obj!r} is not a valid {type_hint.__name__} (expected one of {accepted})"
            ) from None
