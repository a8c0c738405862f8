import asyncio

import pytest

from conftest import HELLO_RESULT, GatedEngine, ScriptedEngine
from himmel.model.artifact_model import ArtifactOrigin, BinaryArtifact
from himmel.model.state_model import AnalysisState

ELF_ARTIFACT = BinaryArtifact("hello-x86_64", b"\x7fELF" + b"\x00" * 60, ArtifactOrigin.DEMO)
OTHER_RESULT = HELLO_RESULT.replace("4198400", "4096")


async def test_successful_analysis(context_factory, scripted_engine):
    context = await context_factory(scripted_engine)
    orchestrator = context.orchestrator
    orchestrator.record_artifact(ELF_ARTIFACT)
    assert context.state.trigger_enabled

    result = await orchestrator.invoke(ELF_ARTIFACT)

    state = context.state
    assert result is not None
    assert result.elf_info.entry_point == 4198400
    assert state.analysis_state is AnalysisState.SUCCESS
    assert state.result == result
    assert state.results_visible
    assert state.error is None
    assert not state.is_loading
    assert state.trigger_enabled
    assert scripted_engine.calls == [ELF_ARTIFACT.data]


async def test_loading_state_while_engine_runs(context_factory, gated_engine: GatedEngine):
    context = await context_factory(gated_engine)
    context.orchestrator.record_artifact(ELF_ARTIFACT)

    task = asyncio.ensure_future(context.orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)

    state = context.state
    assert state.analysis_state is AnalysisState.LOADING
    assert state.is_loading
    assert not state.trigger_enabled
    assert state.error is None
    assert state.result is None

    gated_engine.release(0, HELLO_RESULT)
    await task
    assert state.analysis_state is AnalysisState.SUCCESS
    assert not state.is_loading


async def test_engine_error_document(context_factory):
    context = await context_factory(ScriptedEngine('{"error": "Not an ELF file"}'))

    assert await context.orchestrator.invoke(ELF_ARTIFACT) is None

    state = context.state
    assert state.analysis_state is AnalysisState.ERROR
    assert state.error == "Analysis failed: Not an ELF file"
    assert state.result is None
    assert not state.results_visible
    assert not state.is_loading


async def test_malformed_engine_output(context_factory):
    context = await context_factory(ScriptedEngine("{not json"))

    await context.orchestrator.invoke(ELF_ARTIFACT)

    assert context.state.analysis_state is AnalysisState.ERROR
    assert context.state.error.startswith("Analysis failed: Invalid JSON from engine")
    assert not context.state.is_loading


async def test_schema_violation(context_factory):
    context = await context_factory(ScriptedEngine('{"elf_info": {"architecture": "x86_64"}}'))

    await context.orchestrator.invoke(ELF_ARTIFACT)

    assert context.state.error == (
        "Analysis failed: elf_info: missing required field 'entry_point'"
    )


async def test_engine_raises(context_factory):
    context = await context_factory(ScriptedEngine(RuntimeError("unreachable")))

    await context.orchestrator.invoke(ELF_ARTIFACT)

    assert context.state.analysis_state is AnalysisState.ERROR
    assert context.state.error == "Analysis failed: unreachable"
    assert not context.state.is_loading


async def test_new_invoke_clears_previous_error(context_factory):
    engine = ScriptedEngine('{"error": "Not an ELF file"}')
    context = await context_factory(engine)
    await context.orchestrator.invoke(ELF_ARTIFACT)
    assert context.state.error is not None

    engine.response = HELLO_RESULT
    await context.orchestrator.invoke(ELF_ARTIFACT)

    assert context.state.error is None
    assert context.state.analysis_state is AnalysisState.SUCCESS


async def test_invoke_without_artifact(context_factory):
    engine = ScriptedEngine('{"elf_info": null}')
    context = await context_factory(engine)

    result = await context.orchestrator.invoke(None)

    assert engine.calls == [None]
    assert result.elf_info is None
    assert context.state.analysis_state is AnalysisState.SUCCESS
    assert not context.state.trigger_enabled


async def test_invoke_before_engine_ready(context_factory, scripted_engine):
    context = await context_factory(scripted_engine, start=False)
    context.orchestrator.record_artifact(ELF_ARTIFACT)

    assert await context.orchestrator.invoke(ELF_ARTIFACT) is None

    state = context.state
    assert state.error == "Analysis engine not loaded"
    assert state.analysis_state is AnalysisState.ERROR
    assert not state.is_loading
    assert state.trigger_enabled
    assert scripted_engine.calls == []


@pytest.mark.parametrize("settle_order", [(0, 1), (1, 0)])
async def test_last_request_wins(context_factory, gated_engine: GatedEngine, settle_order):
    context = await context_factory(gated_engine)
    orchestrator = context.orchestrator
    orchestrator.record_artifact(ELF_ARTIFACT)

    first = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)
    second = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(2)

    responses = [HELLO_RESULT, OTHER_RESULT]
    for index in settle_order:
        gated_engine.release(index, responses[index])
        await asyncio.sleep(0)
    first_result, second_result = await asyncio.gather(first, second)

    assert first_result is None
    assert second_result.elf_info.entry_point == 4096
    assert context.state.result.elf_info.entry_point == 4096
    assert context.state.analysis_state is AnalysisState.SUCCESS
    assert not context.state.is_loading


async def test_stale_error_is_dropped(context_factory, gated_engine: GatedEngine):
    context = await context_factory(gated_engine)
    orchestrator = context.orchestrator

    first = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)
    second = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(2)

    gated_engine.release(1, HELLO_RESULT)
    await second
    gated_engine.release(0, RuntimeError("too late"))
    await first

    assert context.state.error is None
    assert context.state.analysis_state is AnalysisState.SUCCESS
    assert context.state.result.elf_info.entry_point == 4198400


async def test_superseded_call_keeps_loading_indicator(context_factory, gated_engine: GatedEngine):
    context = await context_factory(gated_engine)
    orchestrator = context.orchestrator

    first = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)
    second = asyncio.ensure_future(orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(2)

    gated_engine.release(0, HELLO_RESULT)
    await first
    assert context.state.is_loading
    assert context.state.analysis_state is AnalysisState.LOADING

    gated_engine.release(1, HELLO_RESULT)
    await second
    assert not context.state.is_loading


async def test_report_error_hides_results(context_factory, scripted_engine):
    context = await context_factory(scripted_engine)
    await context.orchestrator.invoke(ELF_ARTIFACT)
    assert context.state.results_visible

    context.orchestrator.report_error("File size exceeds 10MB limit")

    assert context.state.error == "File size exceeds 10MB limit"
    assert context.state.analysis_state is AnalysisState.ERROR
    assert not context.state.results_visible


async def test_tokens_increase(context_factory, scripted_engine):
    context = await context_factory(scripted_engine)
    tokens = []
    for _ in range(3):
        await context.orchestrator.invoke(ELF_ARTIFACT)
        tokens.append(context.orchestrator.current_token)
    assert tokens == [1, 2, 3]


async def test_success_replaces_error_reported_while_loading(
    context_factory, gated_engine: GatedEngine
):
    context = await context_factory(gated_engine)
    context.orchestrator.record_artifact(ELF_ARTIFACT)

    task = asyncio.ensure_future(context.orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)
    context.orchestrator.report_error("File size exceeds 10MB limit")
    gated_engine.release(0, HELLO_RESULT)
    await task

    state = context.state
    assert state.error is None
    assert state.analysis_state is AnalysisState.SUCCESS
    assert state.results_visible


async def test_cancelled_invoke_settles_state(context_factory, gated_engine: GatedEngine):
    context = await context_factory(gated_engine)
    context.orchestrator.record_artifact(ELF_ARTIFACT)

    task = asyncio.ensure_future(context.orchestrator.invoke(ELF_ARTIFACT))
    await gated_engine.wait_for_calls(1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    state = context.state
    assert state.analysis_state is AnalysisState.IDLE
    assert not state.is_loading
    assert state.trigger_enabled
    assert state.result is None
