import asyncio
from typing import Dict, List, Optional, Tuple, Union

import pytest
from aiohttp import web

from himmel.config import HimmelConfig
from himmel.himmel_context import Himmel, HimmelContext
from himmel.service.engine_service import EngineInterface
from himmel.service.serialization import ResultSerializationService

HELLO_RESULT = (
    '{"elf_info":{"architecture":"x86_64","entry_point":4198400,"sections":[".text"],'
    '"file_type":"EXEC","endianness":"little"}}'
)

DEMO_BLOBS: Dict[Tuple[str, str], bytes] = {
    ("x86_64", "hello"): b"\x7fELF" + b"\x00" * 60,
    ("aarch64", "counter"): b"\x7fELF" + b"\x01" * 124,
}


class ScriptedEngine(EngineInterface):
    """Answers every call with the same response, or raises it if it is an exception."""

    def __init__(self, response: Union[str, Exception] = HELLO_RESULT):
        self.response = response
        self.calls: List[Optional[bytes]] = []

    async def analyze(self, data: Optional[bytes]) -> str:
        self.calls.append(data)
        await asyncio.sleep(0)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class GatedEngine(EngineInterface):
    """Each call blocks until the test releases it, so calls can be made to settle in any order."""

    def __init__(self):
        self.calls: List[Tuple[Optional[bytes], "asyncio.Future[str]"]] = []

    async def analyze(self, data: Optional[bytes]) -> str:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((data, future))
        return await future

    async def wait_for_calls(self, count: int) -> None:
        while len(self.calls) < count:
            await asyncio.sleep(0)

    def release(self, index: int, response: Union[str, Exception]) -> None:
        future = self.calls[index][1]
        if isinstance(response, Exception):
            future.set_exception(response)
        else:
            future.set_result(response)


def loader_for(engine: EngineInterface):
    async def load() -> EngineInterface:
        return engine

    return load


@pytest.fixture(scope="session")
def himmel() -> Himmel:
    """
    Only set up logging once per session
    """
    return Himmel(config=HimmelConfig())


@pytest.fixture
def config() -> HimmelConfig:
    return HimmelConfig(notice_timeout=0.05)


@pytest.fixture
def serializer() -> ResultSerializationService:
    return ResultSerializationService()


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    return ScriptedEngine()


@pytest.fixture
def gated_engine() -> GatedEngine:
    return GatedEngine()


@pytest.fixture
def context_factory(himmel, config):
    async def create(
        engine: EngineInterface, start: bool = True, context_config: Optional[HimmelConfig] = None
    ) -> HimmelContext:
        context = await himmel.create_himmel_context(
            loader_for(engine), context_config if context_config is not None else config
        )
        if start:
            await context.start_context()
        return context

    return create


@pytest.fixture
async def demo_server(aiohttp_server):
    """In-process server for `demo-binaries/bin/<arch>/<program>`, with the blobs of DEMO_BLOBS."""

    async def get_demo_binary(request: web.Request) -> web.Response:
        key = (request.match_info["arch"], request.match_info["program"])
        if key not in DEMO_BLOBS:
            raise web.HTTPNotFound()
        return web.Response(body=DEMO_BLOBS[key], content_type="application/octet-stream")

    app = web.Application()
    app.router.add_get("/demo-binaries/bin/{arch}/{program}", get_demo_binary)
    return await aiohttp_server(app)


@pytest.fixture
def demo_config(demo_server) -> HimmelConfig:
    return HimmelConfig(demo_base_url=str(demo_server.make_url("/")), notice_timeout=0.05)
