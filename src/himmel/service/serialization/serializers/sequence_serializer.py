from collections.abc import Sequence
from typing import Any, List

from beartype import beartype
from typing_inspect import get_args, get_origin

from himmel.service.serialization.pjson_types import PJSONType
from himmel.service.serialization.serializers.serializer_i import SerializerInterface


class SequenceSerializer(SerializerInterface):
    """
    Serialize and deserialize `List[X]` and `Sequence[X]` into `PJSONType`.

    Implementation: both are serialized as lists, preserving element order.
    """

    targets = (lambda type_hint: get_origin(type_hint) in (list, Sequence),)

    def obj_to_pjson(self, obj: Any, type_hint: Any) -> List[PJSONType]:
        item_type = get_args(type_hint)[0]
        return [self._service.to_pjson(item, item_type) for item in obj]

    @beartype
    def pjson_to_obj(self, pjson_obj: List[Any], type_hint: Any) -> List[Any]:
        item_type = get_args(type_hint)[0]
        return [
            self._service.from_pjson(item, item_type, location=f"[{i}]")
            for i, item in enumerate(pjson_obj)
        ]
