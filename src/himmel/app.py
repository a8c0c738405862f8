import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type

from himmel.error import HimmelError, ModuleLoadFailedError
from himmel.himmel_context import HimmelContext
from himmel.model.artifact_model import BinaryArtifact
from himmel.model.state_model import AnalysisState
from himmel.model.view_model import DemoProgramView, ViewSection
from himmel.render.renderer import format_file_size, render_demo_catalog

LOGGER = logging.getLogger(__name__)

MODULE_LOAD_FAILED_MESSAGE = "Failed to load analysis engine. Please restart the session."


##################################################################################
#                           COMMANDS
##################################################################################


@dataclass(frozen=True)
class SelectFileCommand:
    file_path: str


@dataclass(frozen=True)
class DropFileCommand:
    name: str
    data: bytes


@dataclass(frozen=True)
class SelectDemoCommand:
    program: str
    arch: str


@dataclass(frozen=True)
class AnalyzeCommand:
    pass


HimmelCommand = Any


##################################################################################
#                           VIEW
##################################################################################


@dataclass(frozen=True)
class FileInfo:
    name: str
    size: str


@dataclass(frozen=True)
class HimmelView:
    """
    Snapshot of everything the client displays, taken after a command has been handled.

    :ivar sections: rendered results, empty unless the results panel is visible
    :ivar demo_catalog: the selectable demo programs, grouped by program
    """

    analysis_state: AnalysisState
    is_loading: bool
    trigger_enabled: bool
    error: Optional[str]
    notice: Optional[str]
    file_info: Optional[FileInfo]
    sections: Tuple[ViewSection, ...]
    demo_catalog: Tuple[DemoProgramView, ...] = ()


class HimmelApp:
    """
    Entry point of the client: user actions come in as commands, the display goes out as a
    `HimmelView`.
    """

    def __init__(self, context: HimmelContext):
        self._context = context
        self._file_info: Optional[FileInfo] = None
        self._notice_handle: Optional[asyncio.TimerHandle] = None
        self._demo_catalog = render_demo_catalog()
        self._handlers: Dict[Type, Callable[[Any], Awaitable[None]]] = {
            SelectFileCommand: self._select_file,
            DropFileCommand: self._drop_file,
            SelectDemoCommand: self._select_demo,
            AnalyzeCommand: self._analyze,
        }

    @property
    def context(self) -> HimmelContext:
        return self._context

    async def start(self) -> HimmelView:
        """Load the analysis engine. A failure is shown to the user rather than raised."""
        try:
            await self._context.start_context()
        except ModuleLoadFailedError as e:
            LOGGER.warning(f"Could not load the analysis engine: {e}")
            self._context.orchestrator.report_error(MODULE_LOAD_FAILED_MESSAGE)
        return self.view()

    async def dispatch(self, command: HimmelCommand) -> HimmelView:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unknown command {command!r}")
        await handler(command)
        return self.view()

    def view(self) -> HimmelView:
        state = self._context.state
        sections: Tuple[ViewSection, ...] = ()
        if state.results_visible:
            assert state.result is not None
            sections = tuple(self._context.renderer.render(state.result))
        return HimmelView(
            state.analysis_state,
            state.is_loading,
            state.trigger_enabled,
            state.error,
            state.notice,
            self._file_info,
            sections,
            self._demo_catalog,
        )

    async def _select_file(self, command: SelectFileCommand) -> None:
        try:
            artifact = await self._context.acquisition_service.ingest_file(command.file_path)
        except (HimmelError, OSError) as e:
            LOGGER.warning(f"Could not read {command.file_path}: {e}")
            self._context.orchestrator.report_error(str(e))
            return
        self._record(artifact, artifact.name)

    async def _drop_file(self, command: DropFileCommand) -> None:
        try:
            artifact = await self._context.acquisition_service.ingest_data(
                command.name, command.data
            )
        except HimmelError as e:
            LOGGER.warning(f"Rejected dropped file {command.name}: {e}")
            self._context.orchestrator.report_error(str(e))
            return
        self._record(artifact, artifact.name)

    async def _select_demo(self, command: SelectDemoCommand) -> None:
        try:
            artifact = await self._context.acquisition_service.ingest_demo(
                command.program, command.arch
            )
        except HimmelError as e:
            LOGGER.warning(f"Could not load demo {command.program} ({command.arch}): {e}")
            self._context.orchestrator.report_error(str(e))
            return
        self._record(artifact, f"{command.program} ({command.arch})")
        self._show_notice(f"Demo binary loaded: {command.program} ({command.arch})")

    async def _analyze(self, command: AnalyzeCommand) -> None:
        """
        Analyze the recorded artifact. Like the trigger it stands for, the command does nothing
        while the trigger is disabled: before any artifact is recorded, and while an analysis runs.
        """
        if not self._context.state.trigger_enabled:
            LOGGER.debug("Ignoring analyze command while the trigger is disabled")
            return
        await self._context.orchestrator.invoke(self._context.state.artifact)

    def _record(self, artifact: BinaryArtifact, display_name: str) -> None:
        self._context.orchestrator.record_artifact(artifact)
        self._file_info = FileInfo(display_name, format_file_size(artifact.size))

    def _show_notice(self, message: str) -> None:
        if self._notice_handle is not None:
            self._notice_handle.cancel()
        self._context.orchestrator.show_notice(message)
        loop = asyncio.get_running_loop()
        self._notice_handle = loop.call_later(
            self._context.config.notice_timeout, self._hide_notice, message
        )

    def _hide_notice(self, message: str) -> None:
        if self._context.state.notice == message:
            self._context.orchestrator.show_notice(None)
        self._notice_handle = None
