"""In-process function runtime.

Functions are Python callables, either registered directly with
``register`` or resolved from a ``"package.module:attribute"`` handler
string on ``deploy``. Synchronous handlers run in a worker thread.
"""

import asyncio
import importlib
import inspect
import uuid
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set

import structlog

from infrastructure.resilience.errors import InvalidArgumentError, NotFoundError
from modules.providers.contracts import FunctionProvider
from modules.providers.models import (
    ExecutionStatus,
    FunctionDefinition,
    FunctionExecution,
    FunctionResult,
    HealthCheckResult,
    LogEntry,
    ScheduledFunction,
    utcnow,
)

logger = structlog.get_logger()

MAX_LOG_ENTRIES = 1000


def resolve_handler(handler: str) -> Callable[..., Any]:
    """Import ``"module:attr"`` and return the callable."""
    module_name, _, attribute = handler.partition(":")
    if not module_name or not attribute:
        raise InvalidArgumentError(
            f"Handler must look like 'package.module:function', got {handler!r}"
        )
    try:
        target: Any = importlib.import_module(module_name)
        for part in attribute.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as e:
        raise InvalidArgumentError(f"Cannot resolve handler {handler!r}: {e}") from e
    if not callable(target):
        raise InvalidArgumentError(f"Handler {handler!r} is not callable")
    return target


def _validate_cron(cron: str) -> None:
    if len(cron.split()) != 5:
        raise InvalidArgumentError(
            f"Cron expression must have 5 fields, got {cron!r}"
        )


class LocalFunctionProvider(FunctionProvider):
    def __init__(self):
        self._definitions: Dict[str, FunctionDefinition] = {}
        self._handlers: Dict[str, Callable[..., Any]] = {}
        self._executions: Dict[str, FunctionExecution] = {}
        self._schedules: Dict[str, ScheduledFunction] = {}
        self._logs: Dict[str, Deque[LogEntry]] = defaultdict(
            lambda: deque(maxlen=MAX_LOG_ENTRIES)
        )
        self._tasks: Set[asyncio.Task] = set()

    def register(
        self, name: str, func: Callable[..., Any], timeout_seconds: float = 60.0
    ) -> FunctionDefinition:
        """Register a callable directly, without an importable handler path."""
        definition = FunctionDefinition(
            name=name,
            handler=f"{getattr(func, '__module__', '')}:{getattr(func, '__qualname__', name)}",
            timeout_seconds=timeout_seconds,
        )
        self._definitions[name] = definition
        self._handlers[name] = func
        return definition

    @property
    def schedules(self) -> List[ScheduledFunction]:
        return list(self._schedules.values())

    def _log(self, name: str, level: str, message: str, **metadata: Any) -> None:
        self._logs[name].append(
            LogEntry(timestamp=utcnow(), level=level, message=message, metadata=metadata)
        )

    def _handler(self, name: str) -> Callable[..., Any]:
        if name not in self._handlers:
            raise NotFoundError(f"Function not deployed: {name}")
        return self._handlers[name]

    async def deploy(self, definition: FunctionDefinition) -> FunctionDefinition:
        self._handlers[definition.name] = resolve_handler(definition.handler)
        self._definitions[definition.name] = definition
        logger.info("local_function_deployed", function=definition.name)
        return definition

    async def remove(self, name: str) -> None:
        if name not in self._definitions:
            raise NotFoundError(f"Function not deployed: {name}")
        del self._definitions[name]
        self._handlers.pop(name, None)
        self._schedules = {
            sid: s for sid, s in self._schedules.items() if s.function_name != name
        }

    async def list_functions(self) -> List[FunctionDefinition]:
        return sorted(self._definitions.values(), key=lambda d: d.name)

    async def _run(
        self, execution: FunctionExecution, payload: Any, timeout: float
    ) -> FunctionResult:
        handler = self._handler(execution.function_name)
        execution.status = ExecutionStatus.RUNNING
        try:
            if inspect.iscoroutinefunction(handler):
                body = await asyncio.wait_for(handler(payload), timeout=timeout)
            else:
                body = await asyncio.wait_for(
                    asyncio.to_thread(handler, payload), timeout=timeout
                )
        except asyncio.TimeoutError:
            execution.status = ExecutionStatus.TIMEOUT
            execution.error = f"Timed out after {timeout}s"
            result = FunctionResult(
                status_code=504, body={"error": execution.error}, execution_id=execution.id
            )
        except Exception as e:  # pylint: disable=broad-except
            execution.status = ExecutionStatus.FAILED
            execution.error = str(e)
            result = FunctionResult(
                status_code=500, body={"error": str(e)}, execution_id=execution.id
            )
        else:
            execution.status = ExecutionStatus.COMPLETED
            if isinstance(body, FunctionResult):
                result = FunctionResult(
                    status_code=body.status_code,
                    body=body.body,
                    headers=dict(body.headers),
                    execution_id=execution.id,
                )
            else:
                result = FunctionResult(status_code=200, body=body, execution_id=execution.id)

        execution.end_time = utcnow()
        execution.result = result.body
        self._log(
            execution.function_name,
            "ERROR" if execution.error else "INFO",
            execution.error or "execution completed",
            execution_id=execution.id,
            status=execution.status.value,
            duration_ms=execution.duration_ms,
        )
        return result

    def _start(self, name: str) -> FunctionExecution:
        self._handler(name)
        execution = FunctionExecution(id=uuid.uuid4().hex, function_name=name)
        self._executions[execution.id] = execution
        return execution

    async def invoke(
        self, name: str, payload: Any = None, timeout_seconds: Optional[float] = None
    ) -> FunctionResult:
        execution = self._start(name)
        timeout = timeout_seconds or self._definitions[name].timeout_seconds
        return await self._run(execution, payload, timeout)

    async def invoke_async(self, name: str, payload: Any = None) -> str:
        execution = self._start(name)
        task = asyncio.create_task(
            self._run(execution, payload, self._definitions[name].timeout_seconds)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return execution.id

    async def schedule(self, name: str, cron: str, payload: Any = None) -> str:
        self._handler(name)
        _validate_cron(cron)
        scheduled = ScheduledFunction(
            schedule_id=uuid.uuid4().hex, function_name=name, cron=cron, payload=payload
        )
        self._schedules[scheduled.schedule_id] = scheduled
        self._log(name, "INFO", f"scheduled {cron}", schedule_id=scheduled.schedule_id)
        return scheduled.schedule_id

    async def get_logs(self, name: str, limit: int = 100) -> List[LogEntry]:
        entries = list(self._logs.get(name, ()))
        return entries[-limit:] if limit > 0 else []

    async def get_execution(self, execution_id: str) -> Optional[FunctionExecution]:
        return self._executions.get(execution_id)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True,
            status="healthy",
            details={"functions": len(self._definitions), "running": len(self._tasks)},
        )
