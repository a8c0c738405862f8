from typing import Any, Dict, Optional, Tuple

from himmel.model.result_model import I64, U8, U64
from himmel.service.serialization.serializers.serializer_i import SerializerInterface

_INTEGER_BOUNDS: Dict[Any, Tuple[Optional[int], Optional[int]]] = {
    U8: (0, 2**8 - 1),
    U64: (0, 2**64 - 1),
    I64: (-(2**63), 2**63 - 1),
    int: (None, None),
}


class IntegerSerializer(SerializerInterface):
    """
    Serialize and deserialize integers, checking the bounds of the fixed-width aliases used by the
    result model (`U8`, `U64`, `I64`).

    JSON booleans are rejected even though `bool` is a subclass of `int` in Python.
    """

    targets = tuple(_INTEGER_BOUNDS)

    def obj_to_pjson(self, obj: int, _type_hint: Any) -> int:
        return obj

    def pjson_to_obj(self, pjson_obj: Any, type_hint: Any) -> int:
        if isinstance(pjson_obj, bool) or not isinstance(pjson_obj, int):
            raise self._service.schema_error(
                f"expected {self._service.describe(type_hint)}, got {self._service.describe(type(pjson_obj))}"
            )
        lower, upper = _INTEGER_BOUNDS[type_hint]
        if (lower is not None and pjson_obj < lower) or (upper is not None and pjson_obj > upper):
            raise self._service.schema_error(
                f"{pjson_obj} is out of range for {self._service.describe(type_hint)}"
            )
        return pjson_obj
