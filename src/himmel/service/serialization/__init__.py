from himmel.service.serialization.pjson import ResultSerializationService

__all__ = ["ResultSerializationService"]
