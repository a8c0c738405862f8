import asyncio
import logging
import os
import tempfile
import time
from typing import Any, Awaitable, Callable, Optional

from himmel.config import HimmelConfig
from himmel.model.state_model import HimmelState
from himmel.render.renderer import ResultsRenderer
from himmel.service.acquisition import FileAcquisitionService
from himmel.service.engine_service import EngineLoader, EngineReadinessGate
from himmel.service.orchestrator import AnalysisOrchestrator
from himmel.service.serialization import ResultSerializationService

LOGGER = logging.getLogger(__name__)
DEFAULT_HIMMEL_LOG_FILE = os.path.join(tempfile.gettempdir(), "himmel.log")


class HimmelContext:
    """
    The services of one client session, wired around a single `HimmelState`.
    """

    def __init__(
        self,
        config: HimmelConfig,
        state: HimmelState,
        serializer: ResultSerializationService,
        acquisition_service: FileAcquisitionService,
        engine_gate: EngineReadinessGate,
        orchestrator: AnalysisOrchestrator,
        renderer: ResultsRenderer,
    ):
        self.config = config
        self.state = state
        self.serializer = serializer
        self.acquisition_service = acquisition_service
        self.engine_gate = engine_gate
        self.orchestrator = orchestrator
        self.renderer = renderer

    async def start_context(self) -> None:
        """
        Load the analysis engine.

        :raises ModuleLoadFailedError: if the engine could not be loaded
        """
        await self.engine_gate.open()


class Himmel:
    DEFAULT_LOG_LEVEL = logging.WARNING

    def __init__(
        self,
        logging_level: int = DEFAULT_LOG_LEVEL,
        config: Optional[HimmelConfig] = None,
    ):
        """
        Set up the environment that a client session will use.

        :param logging_level: Logging level of the session (logging.DEBUG, logging.WARNING, etc.)
        :param config: Settings of the session; read from the `HIMMEL_*` environment variables if
        not given
        """
        logging.basicConfig(level=logging_level, format="[%(filename)15s:%(lineno)5s] %(message)s")
        logging.getLogger().addHandler(logging.FileHandler(DEFAULT_HIMMEL_LOG_FILE))
        logging.getLogger().setLevel(logging_level)
        logging.captureWarnings(True)
        if config is None:
            config = HimmelConfig.from_environment()
        self.config = config

    async def create_himmel_context(
        self, engine_loader: EngineLoader, config: Optional[HimmelConfig] = None
    ) -> HimmelContext:
        """
        Create the HimmelContext. The engine is not loaded until the context is started.

        :param config: Settings of this context only, instead of the ones given at set-up
        """
        if config is None:
            config = self.config
        state = HimmelState()
        serializer = ResultSerializationService(max_type_depth=config.max_type_depth)
        engine_gate = EngineReadinessGate(engine_loader)
        return HimmelContext(
            config,
            state,
            serializer,
            FileAcquisitionService(config),
            engine_gate,
            AnalysisOrchestrator(state, engine_gate, serializer),
            ResultsRenderer(serializer, config.max_type_depth),
        )

    async def run_async(
        self,
        func: Callable[[HimmelContext], Awaitable[Any]],
        engine_loader: EngineLoader,
    ) -> Any:
        himmel_context = await self.create_himmel_context(engine_loader)
        start = time.time()
        try:
            await himmel_context.start_context()
            return await func(himmel_context)
        finally:
            LOGGER.info(f"Session took {time.time() - start:.3f} seconds")

    def run(
        self,
        func: Callable[[HimmelContext], Awaitable[Any]],
        engine_loader: EngineLoader,
    ) -> Any:
        return asyncio.run(self.run_async(func, engine_loader))
