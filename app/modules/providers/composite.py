"""Backend assembled from independently constructed components."""

import asyncio

import structlog

from modules.providers.contracts import BackendProvider
from modules.providers.models import HealthCheckResult

logger = structlog.get_logger()


class CompositeBackend(BackendProvider):
    """Lifecycle fan-out over the seven component providers.

    Subclasses assign the component attributes in ``__init__``.
    """

    async def initialize(self) -> None:
        for name, component in self.components().items():
            await component.initialize()
            logger.debug("backend_component_initialized", kind=self.kind, component=name)

    async def shutdown(self) -> None:
        # Reverse order so the database persists after its dependents stop
        components = list(self.components().items())
        for name, component in reversed(components):
            try:
                await component.shutdown()
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    "backend_component_shutdown_failed",
                    kind=self.kind,
                    component=name,
                    error=str(e),
                )

    async def health_check(self) -> HealthCheckResult:
        names = list(self.components())
        results = await asyncio.gather(
            *(component.health_check() for component in self.components().values()),
            return_exceptions=True,
        )
        details = {}
        unhealthy = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                details[name] = {"status": "unhealthy", "error": str(result)}
                unhealthy.append(name)
            else:
                details[name] = {"status": result.status, **result.details}
                if not result.healthy:
                    unhealthy.append(name)

        if not unhealthy:
            status = "healthy"
        elif len(unhealthy) == len(names):
            status = "unhealthy"
        else:
            status = "degraded"
        return HealthCheckResult(
            healthy=not unhealthy,
            status=status,
            details={"kind": self.kind, "components": details},
        )
