from typing import Any, Callable

from typing_inspect import get_args, is_union_type

from himmel.error import SchemaError
from himmel.service.serialization.pjson_types import PJSONType
from himmel.service.serialization.serializers.serializer_i import SerializerInterface


class UnionSerializer(SerializerInterface):
    """
    Serialize and deserialize `Union[...]` into `PJSONType`.

    This includes Optional, as Optional[X] == Union[X, type(None)]. A JSON `null` for an Optional
    is read back as `None`, which the result model treats as "unknown".

    Implementation: all types in the Union are tried in order, and the first for which
    handling doesn't return an error is used.
    """

    targets = (is_union_type,)

    def obj_to_pjson(self, obj: Any, type_hint: Any) -> PJSONType:
        if obj is None and type(None) in get_args(type_hint):
            return None
        return self._try_all_types(obj, type_hint, self._service.to_pjson)

    def pjson_to_obj(self, pjson_obj: Any, type_hint: Any) -> Any:
        if pjson_obj is None and type(None) in get_args(type_hint):
            return None
        return self._try_all_types(pjson_obj, type_hint, self._service.from_pjson)

    def _try_all_types(self, obj: Any, type_hint: Any, handler: Callable[[Any, Any], Any]) -> Any:
        candidate_types = [arg for arg in get_args(type_hint) if arg is not type(None)]
        if len(candidate_types) == 1:
            return handler(obj, candidate_types[0])
        failure_reasons = dict()
        for arg in candidate_types:
            try:
                return handler(obj, arg)
            except (SchemaError, TypeError) as e:
                failure_reasons[arg] = e
        reasons_string = "; ".join(
            f"{self._service.describe(arg)}: {reason}" for arg, reason in failure_reasons.items()
        )
        raise self._service.schema_error(f"no member of the union matched ({reasons_string})")
