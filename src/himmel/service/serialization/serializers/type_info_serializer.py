from typing import Any, Dict

from beartype import beartype

from himmel.model.result_model import TypeInfo
from himmel.service.serialization.pjson_types import PJSONType
from himmel.service.serialization.serializers.dataclass_serializer import DataclassSerializer


class TypeInfoSerializer(DataclassSerializer):
    """
    Serialize and deserialize the recursive `TypeInfo` node.

    On top of the generic dataclass handling, this serializer:

    - bounds the nesting depth of the type tree, and refuses a node that is already on its own
      ancestry path, so a malformed or cyclic graph can't recurse without end;
    - requires the `members` key for the aggregate kinds (struct, union, enum). Other kinds may
      omit it, in which case the member list is empty.
    """

    targets = (TypeInfo,)

    def obj_to_pjson(self, obj: TypeInfo, type_hint: Any) -> Dict[str, PJSONType]:
        with self._service.visit_type_node(obj):
            return super().obj_to_pjson(obj, type_hint)

    @beartype
    def pjson_to_obj(self, pjson_obj: Dict[str, Any], type_hint: Any) -> TypeInfo:
        with self._service.visit_type_node(pjson_obj):
            type_info = TypeInfo(**self._deserialize_fields(pjson_obj, TypeInfo))
        if type_info.kind.has_members and "members" not in pjson_obj:
            raise self._service.schema_error(
                f"type '{type_info.name}' of kind '{type_info.kind.value}' has no 'members'"
            )
        return type_info
