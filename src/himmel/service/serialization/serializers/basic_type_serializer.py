from typing import Any, Union

from himmel.service.serialization.serializers.serializer_i import SerializerInterface


class BasicTypeSerializer(SerializerInterface):
    """
    Serialize and deserialize basic types (which don't need any change) into `PJSONType`.

    Integers are handled by `IntegerSerializer`, which also checks their range.
    """

    targets = (float, bool, str, type(None))

    BasicType = Union[float, bool, str, None]

    def obj_to_pjson(self, obj: BasicType, _type_hint: Any) -> BasicType:
        return obj

    def pjson_to_obj(self, pjson_obj: Any, type_hint: Any) -> BasicType:
        if type_hint is float and isinstance(pjson_obj, int) and not isinstance(pjson_obj, bool):
            return float(pjson_obj)
        if type(pjson_obj) is not type_hint:
            raise self._service.schema_error(
                f"expected {self._service.describe(type_hint)}, got {self._service.describe(type(pjson_obj))}"
            )
        return pjson_obj
