import sys
from typing import Any, Dict

import orjson

__all__ = [
    "HimmelError",
    "SizeExceededError",
    "FetchFailedError",
    "ModuleLoadFailedError",
    "EngineError",
    "ParseError",
    "SchemaError",
    "NotFoundError",
    "InvalidStateError",
]


class HimmelError(RuntimeError):
    """
    Base class of every error the client surfaces to the user. Each error can be flattened into a
    single `{"type", "message"}` record and rebuilt from it.
    """

    def to_json(self) -> str:
        return orjson.dumps(self.to_dict(self)).decode("utf-8")

    @classmethod
    def to_dict(cls, error: Exception) -> Dict[str, Any]:
        return {"type": type(error).__name__, "message": str(error)}

    @classmethod
    def from_json(cls, serialized: str) -> "HimmelError":
        error_dict = orjson.loads(serialized)
        error_type = getattr(sys.modules[__name__], error_dict["type"], None)
        if error_type is None or not issubclass(error_type, HimmelError):
            raise ValueError(error_dict)
        return error_type.from_dict(error_dict)

    @classmethod
    def from_dict(cls, error_dict: Dict[str, Any]) -> "HimmelError":
        return cls(error_dict["message"])


class SizeExceededError(HimmelError):
    pass


class FetchFailedError(HimmelError):
    pass


class ModuleLoadFailedError(HimmelError):
    pass


class EngineError(HimmelError):
    """
    The engine reported a failure, either through `{"error": <message>}` or by raising.

    :ivar engine_message: the engine's own message, unmodified
    """

    def __init__(self, engine_message: str):
        super().__init__(engine_message)
        self.engine_message = engine_message


class ParseError(HimmelError):
    pass


class SchemaError(HimmelError):
    pass


class NotFoundError(HimmelError):
    pass


class InvalidStateError(HimmelError):
    pass
