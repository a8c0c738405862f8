from himmel.app import (
    AnalyzeCommand as AnalyzeCommand,
    DropFileCommand as DropFileCommand,
    FileInfo as FileInfo,
    HimmelApp as HimmelApp,
    HimmelView as HimmelView,
    SelectDemoCommand as SelectDemoCommand,
    SelectFileCommand as SelectFileCommand,
)
from himmel.config import HimmelConfig as HimmelConfig
from himmel.himmel_context import Himmel as Himmel, HimmelContext as HimmelContext
from himmel.model.result_model import (
    AnalysisResult as AnalysisResult,
    ElfInfo as ElfInfo,
    TypeInfo as TypeInfo,
)
from himmel.model.state_model import AnalysisState as AnalysisState
from himmel.render.renderer import render_text as render_text
from himmel.service.engine_service import (
    CallableEngine as CallableEngine,
    CliEngine as CliEngine,
    EngineInterface as EngineInterface,
)
