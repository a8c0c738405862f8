from typing import Any, Dict, List, Union

# Under-approximation of the PJSON type (which is recursive, contrary to this definition).
# All objects of the real PJSON type will be of this type, but some non-PJSON objects will
# also be of this type.
PJSONType = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]
