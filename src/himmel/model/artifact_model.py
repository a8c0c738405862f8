from dataclasses import dataclass, field
from enum import Enum


class ArtifactOrigin(Enum):
    """
    Where the bytes of an artifact came from.

    :ivar UPLOAD: a file picked or dropped by the user
    :ivar DEMO: a binary fetched from the demo catalog
    """

    UPLOAD = "upload"
    DEMO = "demo"


@dataclass(frozen=True)
class BinaryArtifact:
    """
    The in-memory binary handed to the engine on the next analysis.

    :ivar name: display name (the file name, or `<program>-<arch>` for demos)
    :ivar data: raw bytes of the binary
    :ivar origin: how the artifact was acquired
    """

    name: str
    data: bytes = field(repr=False)
    origin: ArtifactOrigin

    @property
    def size(self) -> int:
        return len(self.data)
