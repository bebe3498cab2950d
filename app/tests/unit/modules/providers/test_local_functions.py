"""Unit tests for LocalFunctionProvider."""

import asyncio
import json

import pytest

from infrastructure.resilience import InvalidArgumentError, NotFoundError
from modules.providers.local import LocalFunctionProvider
from modules.providers.local.functions import resolve_handler
from modules.providers.models import ExecutionStatus, FunctionDefinition, FunctionResult


@pytest.fixture
def functions():
    return LocalFunctionProvider()


async def echo(payload):
    return {"echo": payload}


async def wait_for_execution(functions, execution_id):
    for _ in range(100):
        execution = await functions.get_execution(execution_id)
        if execution.end_time is not None:
            return execution
        await asyncio.sleep(0.01)
    raise AssertionError(f"execution {execution_id} never finished")


@pytest.mark.unit
class TestResolveHandler:
    def test_resolves_module_attribute(self):
        assert resolve_handler("json:dumps") is json.dumps

    @pytest.mark.parametrize(
        "handler",
        [
            "json",
            ":dumps",
            "json:",
            "json:no_such",
            "no_such_module_x:f",
            "json.decoder:__name__",
        ],
    )
    def test_rejects_unresolvable(self, handler):
        with pytest.raises(InvalidArgumentError):
            resolve_handler(handler)


@pytest.mark.unit
class TestDeployment:
    @pytest.mark.asyncio
    async def test_deploy_from_handler_path(self, functions):
        await functions.deploy(FunctionDefinition(name="dump", handler="json:dumps"))

        result = await functions.invoke("dump", {"a": 1})

        assert result.status_code == 200
        assert result.body == '{"a": 1}'
        assert result.execution_id

    @pytest.mark.asyncio
    async def test_list_and_remove(self, functions):
        functions.register("b", echo)
        functions.register("a", echo)
        await functions.schedule("a", "0 * * * *")

        assert [d.name for d in await functions.list_functions()] == ["a", "b"]

        await functions.remove("a")

        assert [d.name for d in await functions.list_functions()] == ["b"]
        assert functions.schedules == []
        with pytest.raises(NotFoundError):
            await functions.invoke("a")
        with pytest.raises(NotFoundError):
            await functions.remove("a")


@pytest.mark.unit
class TestInvocation:
    @pytest.mark.asyncio
    async def test_async_handler(self, functions):
        functions.register("echo", echo)

        result = await functions.invoke("echo", "hi")

        assert result.status_code == 200
        assert result.body == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_handler_error_becomes_500(self, functions):
        def broken(_payload):
            raise ValueError("bad payload")

        functions.register("broken", broken)

        result = await functions.invoke("broken")

        assert result.status_code == 500
        assert result.body == {"error": "bad payload"}
        logs = await functions.get_logs("broken")
        assert logs[-1].level == "ERROR"

    @pytest.mark.asyncio
    async def test_timeout_becomes_504(self, functions):
        async def slow(_payload):
            await asyncio.sleep(5)

        functions.register("slow", slow, timeout_seconds=5)

        result = await functions.invoke("slow", timeout_seconds=0.01)

        assert result.status_code == 504
        execution = await functions.get_execution(result.execution_id)
        assert execution.status == ExecutionStatus.TIMEOUT

    @pytest.mark.asyncio
    async def test_function_result_passes_through(self, functions):
        async def created(_payload):
            return FunctionResult(status_code=201, body="made", headers={"x": "1"})

        functions.register("created", created)

        result = await functions.invoke("created")

        assert result.status_code == 201
        assert result.body == "made"
        assert result.headers == {"x": "1"}

    @pytest.mark.asyncio
    async def test_invoke_async_tracks_execution(self, functions):
        functions.register("echo", echo)

        execution_id = await functions.invoke_async("echo", 3)
        execution = await wait_for_execution(functions, execution_id)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.result == {"echo": 3}
        assert execution.duration_ms is not None

    @pytest.mark.asyncio
    async def test_unknown_execution(self, functions):
        assert await functions.get_execution("missing") is None

    @pytest.mark.asyncio
    async def test_shutdown_cancels_background_runs(self, functions):
        async def slow(_payload):
            await asyncio.sleep(5)

        functions.register("slow", slow)
        await functions.invoke_async("slow")

        await functions.shutdown()

        assert (await functions.health_check()).details["running"] == 0


@pytest.mark.unit
class TestSchedulesAndLogs:
    @pytest.mark.asyncio
    async def test_schedule_validation(self, functions):
        functions.register("echo", echo)

        with pytest.raises(InvalidArgumentError):
            await functions.schedule("echo", "every minute")
        with pytest.raises(NotFoundError):
            await functions.schedule("missing", "* * * * *")

        schedule_id = await functions.schedule("echo", "*/5 * * * *", {"n": 1})

        assert functions.schedules[0].schedule_id == schedule_id
        assert functions.schedules[0].payload == {"n": 1}

    @pytest.mark.asyncio
    async def test_get_logs_limit(self, functions):
        functions.register("echo", echo)
        for n in range(3):
            await functions.invoke("echo", n)

        assert len(await functions.get_logs("echo", limit=2)) == 2
        assert await functions.get_logs("echo", limit=0) == []
        assert await functions.get_logs("never-ran") == []
