import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

MAX_UPLOAD_SIZE = 10 * 1024 * 1024
DEFAULT_DEMO_BASE_URL = "http://localhost:8000/"

_ENVIRONMENT_PREFIX = "HIMMEL_"


@dataclass(frozen=True)
class HimmelConfig:
    """
    Settings shared by every service of a `HimmelContext`.

    :ivar max_upload_size: largest artifact accepted from a file or a drop, in bytes
    :ivar demo_base_url: URL under which `demo-binaries/bin/<arch>/<program>` is served
    :ivar notice_timeout: seconds before the "demo loaded" notice hides itself
    :ivar max_type_depth: maximum TypeInfo nesting accepted from the engine and rendered
    :ivar fetch_timeout: total timeout of a demo download, in seconds
    """

    max_upload_size: int = MAX_UPLOAD_SIZE
    demo_base_url: str = DEFAULT_DEMO_BASE_URL
    notice_timeout: float = 3.0
    max_type_depth: int = 32
    fetch_timeout: float = 30.0

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "HimmelConfig":
        """
        Build a config from the defaults, overridden by any `HIMMEL_<FIELD>` variable present in
        `environ` (the process environment if not given).

        :raises ValueError: if a numeric variable cannot be converted
        """
        if environ is None:
            environ = os.environ
        overrides = {}
        for config_field in fields(cls):
            raw_value = environ.get(_ENVIRONMENT_PREFIX + config_field.name.upper())
            if raw_value is None:
                continue
            field_type = type(getattr(cls, config_field.name))
            try:
                overrides[config_field.name] = field_type(raw_value)
            except ValueError as e:
                raise ValueError(
                    f"Invalid value {raw_value!r} for {_ENVIRONMENT_PREFIX}"
                    f"{config_field.name.upper()}"
                ) from e
        return replace(cls(), **overrides)
