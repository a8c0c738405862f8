import asyncio
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple
from urllib.parse import urljoin

import aiohttp

from himmel.config import HimmelConfig
from himmel.error import FetchFailedError, NotFoundError, SizeExceededError
from himmel.model.artifact_model import ArtifactOrigin, BinaryArtifact

LOGGER = logging.getLogger(__name__)


##################################################################################
#                           DEMO CATALOG
##################################################################################


@dataclass(frozen=True)
class DemoBinary:
    """
    A pre-built program served at `demo-binaries/bin/<arch>/<program>`.

    :ivar size: human-readable size label, as shown next to the entry
    """

    program: str
    arch: str
    size: str

    @property
    def display_name(self) -> str:
        return PROGRAM_DISPLAY_NAMES.get(self.program, self.program)

    @property
    def description(self) -> str:
        return PROGRAM_DESCRIPTIONS.get(self.program, "")

    @property
    def path(self) -> str:
        return f"demo-binaries/bin/{self.arch}/{self.program}"

    @property
    def artifact_name(self) -> str:
        return f"{self.program}-{self.arch}"


DEMO_BINARIES: Tuple[DemoBinary, ...] = (
    DemoBinary("hello", "x86_64", "767KB"),
    DemoBinary("hello", "aarch64", "619KB"),
    DemoBinary("hello", "riscv64", "544KB"),
    DemoBinary("fibonacci", "x86_64", "768KB"),
    DemoBinary("fibonacci", "aarch64", "620KB"),
    DemoBinary("fibonacci", "riscv64", "544KB"),
    DemoBinary("counter", "x86_64", "3.6MB"),
    DemoBinary("counter", "aarch64", "3.6MB"),
    DemoBinary("counter", "riscv64", "3.7MB"),
)

PROGRAM_DISPLAY_NAMES: Dict[str, str] = {
    "hello": "Hello World (C)",
    "fibonacci": "Fibonacci (C)",
    "counter": "Counter (Rust)",
}

PROGRAM_DESCRIPTIONS: Dict[str, str] = {
    "hello": "Simple C program compiled for different architectures",
    "fibonacci": "Recursive fibonacci calculator in C",
    "counter": "Simple counter program written in Rust",
}


def group_demo_binaries(
    binaries: Iterable[DemoBinary] = DEMO_BINARIES,
) -> "OrderedDict[str, List[DemoBinary]]":
    """Group catalog entries by program, in the order each program first appears."""
    groups: "OrderedDict[str, List[DemoBinary]]" = OrderedDict()
    for binary in binaries:
        groups.setdefault(binary.program, []).append(binary)
    return groups


def get_demo_binary(program: str, arch: str) -> DemoBinary:
    for binary in DEMO_BINARIES:
        if binary.program == program and binary.arch == arch:
            return binary
    raise NotFoundError(f"No demo binary for {program} ({arch})")


##################################################################################
#                           FILE ACQUISITION
##################################################################################


class FileAcquisitionService:
    """
    Turns a user action (picking a file, dropping bytes, selecting a demo) into a validated
    `BinaryArtifact`. This service never records the artifact; that is the orchestrator's job,
    so a failed acquisition leaves the current artifact untouched.
    """

    def __init__(self, config: HimmelConfig):
        self._config = config

    async def ingest_file(self, file_path: str) -> BinaryArtifact:
        """
        Read a file picked by the user.

        :raises SizeExceededError: if the file is larger than the upload ceiling
        :raises FileNotFoundError: if there is no such file
        """
        full_file_path = os.path.abspath(file_path)
        self._check_size(os.stat(full_file_path).st_size)
        with open(full_file_path, "rb") as f:
            data = f.read()
        return await self.ingest_data(os.path.basename(full_file_path), data)

    async def ingest_data(self, name: str, data: bytes) -> BinaryArtifact:
        """
        Wrap bytes that are already in memory, e.g. a file dropped on the client.

        :raises SizeExceededError: if `data` is larger than the upload ceiling
        """
        self._check_size(len(data))
        LOGGER.debug(f"Ingested {name} ({len(data)} bytes)")
        return BinaryArtifact(name, bytes(data), ArtifactOrigin.UPLOAD)

    async def ingest_demo(self, program: str, arch: str) -> BinaryArtifact:
        """
        Download one of the demo binaries.

        :raises NotFoundError: if the catalog has no such entry
        :raises FetchFailedError: if the download fails or the server answers with an error status
        """
        demo_binary = get_demo_binary(program, arch)
        url = self.get_demo_url(demo_binary)
        LOGGER.debug(f"Fetching demo binary from {url}")
        timeout = aiohttp.ClientTimeout(total=self._config.fetch_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if not response.ok:
                        raise FetchFailedError(f"Failed to load demo binary: {response.reason}")
                    data = await response.read()
        except aiohttp.ClientError as e:
            raise FetchFailedError(f"Failed to load demo binary: {e}") from e
        except asyncio.TimeoutError as e:
            raise FetchFailedError("Failed to load demo binary: request timed out") from e
        LOGGER.debug(f"Fetched {demo_binary.artifact_name} ({len(data)} bytes)")
        return BinaryArtifact(demo_binary.artifact_name, data, ArtifactOrigin.DEMO)

    def get_demo_url(self, demo_binary: DemoBinary) -> str:
        return urljoin(self._config.demo_base_url, demo_binary.path)

    def _check_size(self, size: int) -> None:
        if size > self._config.max_upload_size:
            raise SizeExceededError(
                f"File size exceeds {format_size_limit(self._config.max_upload_size)} limit"
            )


def format_size_limit(limit: int) -> str:
    megabytes, remainder = divmod(limit, 1024 * 1024)
    if remainder == 0:
        return f"{megabytes}MB"
    return f"{limit} bytes"
