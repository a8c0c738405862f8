import logging
from typing import Optional

from himmel.error import EngineError, HimmelError
from himmel.model.artifact_model import BinaryArtifact
from himmel.model.result_model import AnalysisResult
from himmel.model.state_model import AnalysisState, HimmelState
from himmel.service.engine_service import EngineReadinessGate
from himmel.service.serialization import ResultSerializationService

LOGGER = logging.getLogger(__name__)

ENGINE_NOT_LOADED_MESSAGE = "Analysis engine not loaded"


class AnalysisOrchestrator:
    """
    Owns the analysis lifecycle and is the only writer of the session's `HimmelState`.

    Lifecycle: IDLE -> LOADING on `invoke`; LOADING -> SUCCESS when the engine's document has no
    `error`; LOADING -> ERROR when the engine raises, returns malformed JSON or returns an error;
    SUCCESS/ERROR -> LOADING on the next `invoke`.

    Every `invoke` takes a new token. When a call settles, its outcome is applied only if its token
    is still the latest one; otherwise the outcome is dropped. The engine call itself can't be
    aborted, so a superseded call runs to completion but never touches the state.
    """

    def __init__(
        self,
        state: HimmelState,
        engine_gate: EngineReadinessGate,
        serializer: ResultSerializationService,
    ):
        self._state = state
        self._engine_gate = engine_gate
        self._serializer = serializer
        self._token = 0

    @property
    def state(self) -> HimmelState:
        return self._state

    @property
    def current_token(self) -> int:
        return self._token

    def record_artifact(self, artifact: BinaryArtifact) -> None:
        """Make `artifact` the input of the next analysis, replacing any previous artifact."""
        LOGGER.debug(f"Recording artifact {artifact.name} ({artifact.size} bytes)")
        self._state.artifact = artifact
        self._state.trigger_enabled = not self._state.is_loading

    def report_error(self, message: str) -> None:
        """
        Show `message` as the single user-visible error. The results panel is always hidden along
        with it, so an error never sits next to a stale result. An error reported while an analysis
        is running is replaced by that analysis' outcome.
        """
        self._state.error = message
        self._state.result = None
        if not self._state.is_loading:
            self._state.analysis_state = AnalysisState.ERROR

    def show_notice(self, message: Optional[str]) -> None:
        self._state.notice = message

    async def invoke(self, artifact: Optional[BinaryArtifact]) -> Optional[AnalysisResult]:
        """
        Run one analysis of `artifact` (or of no input at all, if None).

        :return: the result, if it was applied to the state; None if the call failed or was
        superseded by a later `invoke`
        """
        self._token += 1
        token = self._token
        LOGGER.debug(f"Starting analysis {token}")

        if not self._engine_gate.is_ready:
            LOGGER.warning(f"Analysis {token} requested before the engine was loaded")
            self._state.is_loading = False
            self._state.analysis_state = AnalysisState.ERROR
            self.report_error(ENGINE_NOT_LOADED_MESSAGE)
            self._state.trigger_enabled = self._state.artifact is not None
            return None

        self._state.analysis_state = AnalysisState.LOADING
        self._state.is_loading = True
        self._state.trigger_enabled = False
        self._state.error = None
        self._state.result = None

        try:
            result = await self._analyze(artifact)
        except HimmelError as error:
            if self._is_current(token):
                LOGGER.warning(f"Analysis {token} failed: {error}")
                self._apply_error(error)
            return None
        except Exception as error:
            if self._is_current(token):
                LOGGER.exception(f"Analysis {token} raised an unexpected exception")
                self._apply_error(EngineError(str(error)))
            return None
        else:
            if not self._is_current(token):
                return None
            self._state.error = None
            self._state.result = result
            self._state.analysis_state = AnalysisState.SUCCESS
            return result
        finally:
            self._finish(token)

    async def _analyze(self, artifact: Optional[BinaryArtifact]) -> AnalysisResult:
        engine = self._engine_gate.engine
        data = artifact.data if artifact is not None else None
        raw_result = await engine.analyze(data)
        result = self._serializer.parse_result(raw_result)
        if result.error is not None:
            raise EngineError(result.error)
        return result

    def _apply_error(self, error: HimmelError) -> None:
        self._state.is_loading = False
        self._state.analysis_state = AnalysisState.ERROR
        self.report_error(f"Analysis failed: {error}")

    def _finish(self, token: int) -> None:
        """Runs on every exit path of `invoke`, including superseded calls."""
        if not self._is_current(token):
            LOGGER.debug(f"Discarding superseded analysis {token} (latest is {self._token})")
            return
        self._state.is_loading = False
        self._state.trigger_enabled = self._state.artifact is not None
        if self._state.analysis_state is AnalysisState.LOADING:
            # Cancelled before an outcome was applied
            self._state.analysis_state = (
                AnalysisState.ERROR if self._state.error is not None else AnalysisState.IDLE
            )

    def _is_current(self, token: int) -> bool:
        return token == self._token
