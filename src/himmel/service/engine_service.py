"""
Boundary to the external analysis engine.

The engine is a separate build that turns the bytes of an ELF file into a JSON document. It is
reached through `EngineInterface`; the `EngineReadinessGate` makes sure it is loaded exactly once
before anything calls it.
"""
import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, Tuple

import orjson

from himmel.error import EngineError, InvalidStateError, ModuleLoadFailedError, ParseError

LOGGER = logging.getLogger(__name__)

DEFAULT_ENGINE_COMMAND = ("himmel",)


class EngineInterface(ABC):
    @abstractmethod
    async def analyze(self, data: Optional[bytes]) -> str:
        """
        Run the engine on a binary.

        :param data: the bytes of the binary, or None to run without an input file

        :return: the engine's JSON document, either a result or `{"error": <message>}`
        """
        raise NotImplementedError()


EngineLoader = Callable[[], Awaitable[EngineInterface]]


class CallableEngine(EngineInterface):
    """
    Engine exposed as a synchronous function, the shape of the compiled module's `analyze` export.
    The call itself blocks, but is only made after yielding to the event loop once, so invoking the
    engine is always a suspension point for the caller.
    """

    def __init__(self, analyze_function: Callable[[Optional[bytes]], str]):
        self._analyze_function = analyze_function

    async def analyze(self, data: Optional[bytes]) -> str:
        await asyncio.sleep(0)
        return self._analyze_function(data)


@dataclass(frozen=True)
class EngineExternalTool:
    """
    A command-line build of the engine that must be present on the host.

    :ivar command: the command (and any leading arguments) that runs the engine
    :ivar install_check_arg: argument which makes the tool exit zero without doing any work
    """

    command: Tuple[str, ...]
    install_check_arg: str = "--version"

    async def is_tool_installed(self) -> bool:
        """
        Check if the tool is installed by running it with the `install_check_arg`.

        :return: True if the command returned zero, False if it could not be found or returned
        a non-zero exit code.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                self.install_check_arg,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except (FileNotFoundError, PermissionError):
            return False
        return 0 == await proc.wait()


class CliEngine(EngineInterface):
    """
    Run the engine's command-line build: `<command> --elf <file>` prints the JSON document on
    stdout, or `Error: <message>` on stderr with a non-zero exit code.
    """

    def __init__(self, command: Sequence[str] = DEFAULT_ENGINE_COMMAND):
        self._command = tuple(command)

    @classmethod
    async def load(cls, command: Sequence[str] = DEFAULT_ENGINE_COMMAND) -> "CliEngine":
        """
        Engine loader for `EngineReadinessGate`.

        :raises ModuleLoadFailedError: if the command can't be run on this host
        """
        tool = EngineExternalTool(tuple(command))
        if not await tool.is_tool_installed():
            raise ModuleLoadFailedError(f"Engine command {' '.join(tool.command)} is not installed")
        return cls(command)

    async def analyze(self, data: Optional[bytes]) -> str:
        if data is None:
            return orjson.dumps({"elf_info": None}).decode("utf-8")

        with tempfile.TemporaryDirectory() as temp_dir:
            elf_path = os.path.join(temp_dir, "artifact.elf")
            with open(elf_path, "wb") as f:
                f.write(data)
            cmd = [*self._command, "--elf", elf_path]
            proc = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
            stdout, stderr = await proc.communicate()

        if proc.returncode:
            message = stderr.decode("utf-8", errors="replace").strip()
            if message.startswith("Error: "):
                message = message[len("Error: ") :]
            raise EngineError(message or f"{cmd[0]} exited with status {proc.returncode}")
        try:
            return stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Invalid JSON from engine: {e}") from e


class EngineReadinessGate:
    """
    One-shot gate in front of the engine. The loader runs on the first `open`; once it succeeds the
    gate is ready for good and every later `open` returns the same engine. Concurrent `open` calls
    share the one load in progress. A failed load leaves the gate closed, so the next `open`
    (triggered again by the user) tries again.
    """

    def __init__(self, loader: EngineLoader):
        self._loader = loader
        self._engine: Optional[EngineInterface] = None
        self._loading: Optional["asyncio.Future[EngineInterface]"] = None

    @property
    def is_ready(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> EngineInterface:
        if self._engine is None:
            raise InvalidStateError("Analysis engine not loaded")
        return self._engine

    async def open(self) -> EngineInterface:
        """
        Load the engine if it isn't loaded yet.

        :raises ModuleLoadFailedError: if the loader fails
        """
        if self._engine is not None:
            return self._engine
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._loading)

    async def _load(self) -> EngineInterface:
        LOGGER.debug("Loading analysis engine")
        try:
            engine = await self._loader()
        except ModuleLoadFailedError:
            self._loading = None
            raise
        except Exception as e:
            self._loading = None
            raise ModuleLoadFailedError(f"Failed to load analysis engine: {e}") from e
        self._engine = engine
        LOGGER.debug(f"Analysis engine {type(engine).__name__} is ready")
        return engine

