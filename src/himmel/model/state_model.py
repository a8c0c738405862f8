from dataclasses import dataclass
from enum import Enum
from typing import Optional

from himmel.model.artifact_model import BinaryArtifact
from himmel.model.result_model import AnalysisResult


class AnalysisState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class HimmelState:
    """
    All mutable state of one client session. A single instance is created per `HimmelContext` and
    is only ever written by the `AnalysisOrchestrator`; other components read it.

    :ivar artifact: binary to analyze on the next trigger
    :ivar analysis_state: lifecycle state of the latest analysis
    :ivar is_loading: whether the loading indicator is shown
    :ivar trigger_enabled: whether the analyze trigger accepts input
    :ivar error: the single user-visible error message, if any
    :ivar result: result currently shown in the results panel, if any
    :ivar notice: transient informational message, if any
    """

    artifact: Optional[BinaryArtifact] = None
    analysis_state: AnalysisState = AnalysisState.IDLE
    is_loading: bool = False
    trigger_enabled: bool = False
    error: Optional[str] = None
    result: Optional[AnalysisResult] = None
    notice: Optional[str] = None

    @property
    def results_visible(self) -> bool:
        return self.analysis_state is AnalysisState.SUCCESS and self.result is not None
