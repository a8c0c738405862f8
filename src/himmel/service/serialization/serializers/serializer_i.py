from abc import ABCMeta, abstractmethod
from typing import Any, Callable, Tuple, Type, Union, TYPE_CHECKING

from himmel.service.serialization.pjson_types import PJSONType

if TYPE_CHECKING:
    from himmel.service.serialization.pjson import ResultSerializationService


class SerializerInterface(metaclass=ABCMeta):
    """
    Converter between one family of type hints and PJSON. The `ResultSerializationService` picks
    a converter by its `targets` and injects itself as `_service`, so converters of container
    types can hand their items back to the service.
    """

    _service: "ResultSerializationService"

    @property
    @abstractmethod
    def targets(self) -> Tuple[Union[Type, Callable[[Any], bool]], ...]:
        """
        Exact type hints handled, or predicates over a type hint. Exact hints are matched first.
        """
        raise NotImplementedError()

    @abstractmethod
    def obj_to_pjson(self, obj: Any, type_hint: Any) -> PJSONType:
        raise NotImplementedError()

    @abstractmethod
    def pjson_to_obj(self, pjson_obj: Any, type_hint: Any) -> Any:
        """
        :raises SchemaError: if `pjson_obj` does not have the shape `type_hint` requires
        """
        raise NotImplementedError()
