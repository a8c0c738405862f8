from typing import List

from himmel.service.serialization.serializers.basic_type_serializer import BasicTypeSerializer
from himmel.service.serialization.serializers.dataclass_serializer import DataclassSerializer
from himmel.service.serialization.serializers.enum_serializer import EnumSerializer
from himmel.service.serialization.serializers.integer_serializer import IntegerSerializer
from himmel.service.serialization.serializers.sequence_serializer import SequenceSerializer
from himmel.service.serialization.serializers.serializer_i import SerializerInterface
from himmel.service.serialization.serializers.type_info_serializer import TypeInfoSerializer
from himmel.service.serialization.serializers.union_serializer import UnionSerializer


def default_serializers() -> List[SerializerInterface]:
    return [
        TypeInfoSerializer(),
        BasicTypeSerializer(),
        IntegerSerializer(),
        EnumSerializer(),
        UnionSerializer(),
        SequenceSerializer(),
        DataclassSerializer(),
    ]
