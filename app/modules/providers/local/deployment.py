"""In-process deployment tracker.

Deployments complete immediately; the provider only keeps history so that
status, logs and rollback behave like a real deployment service.
"""

import uuid
from dataclasses import replace
from typing import Dict, List, Optional

import structlog

from infrastructure.resilience.errors import InvalidArgumentError, NotFoundError
from modules.providers.contracts import DeploymentProvider
from modules.providers.models import (
    DeploymentConfig,
    DeploymentResult,
    DeploymentState,
    DeploymentStatus,
    HealthCheckResult,
    utcnow,
)

logger = structlog.get_logger()


class LocalDeploymentProvider(DeploymentProvider):
    def __init__(self, base_url: str = "http://localhost:8080"):
        self.base_url = base_url.rstrip("/")
        self._deployments: Dict[str, DeploymentStatus] = {}
        self._configs: Dict[str, DeploymentConfig] = {}
        self._logs: Dict[str, List[str]] = {}

    def _status(self, deployment_id: str) -> DeploymentStatus:
        if deployment_id not in self._deployments:
            raise NotFoundError(f"Deployment not found: {deployment_id}")
        return self._deployments[deployment_id]

    def _history(self, project_id: str) -> List[DeploymentStatus]:
        # Insertion order is deployment order
        return [d for d in self._deployments.values() if d.project_id == project_id]

    def _record(
        self, project_id: str, config: DeploymentConfig, logs: List[str]
    ) -> DeploymentResult:
        deployment_id = uuid.uuid4().hex
        now = utcnow()
        url = f"{self.base_url}/{project_id}/{config.environment}"
        for previous in self._history(project_id):
            if (
                previous.environment == config.environment
                and previous.status == DeploymentState.RUNNING
            ):
                previous.status = DeploymentState.STOPPED
                previous.last_updated = now
        self._deployments[deployment_id] = DeploymentStatus(
            deployment_id=deployment_id,
            project_id=project_id,
            status=DeploymentState.RUNNING,
            environment=config.environment,
            version=config.version,
            url=url,
            health="healthy",
            start_time=now,
            last_updated=now,
        )
        self._configs[deployment_id] = config
        self._logs[deployment_id] = logs
        logger.info(
            "local_deployment_recorded",
            deployment_id=deployment_id,
            project_id=project_id,
            environment=config.environment,
        )
        return DeploymentResult(
            deployment_id=deployment_id,
            status=DeploymentState.RUNNING,
            url=url,
            start_time=now,
            end_time=utcnow(),
            logs=list(logs),
        )

    async def deploy(self, project_id: str, config: DeploymentConfig) -> DeploymentResult:
        logs = [
            f"Deploying {config.app_type} to {config.environment}",
            f"Version: {config.version or 'unversioned'}",
            f"Environment variables: {len(config.environment_variables)}",
            "Deployment completed",
        ]
        return self._record(project_id, config, logs)

    async def get_status(self, deployment_id: str) -> DeploymentStatus:
        return replace(self._status(deployment_id))

    async def list_deployments(
        self, project_id: Optional[str] = None
    ) -> List[DeploymentStatus]:
        return [
            replace(d)
            for d in self._deployments.values()
            if project_id is None or d.project_id == project_id
        ]

    async def rollback(self, deployment_id: str) -> DeploymentResult:
        current = self._status(deployment_id)
        history = self._history(current.project_id)
        earlier = [
            d
            for d in history[: history.index(current)]
            if d.environment == current.environment
            and d.status != DeploymentState.FAILED
        ]
        if not earlier:
            raise InvalidArgumentError(
                f"No earlier deployment of {current.project_id}/{current.environment} "
                "to roll back to"
            )
        target = earlier[-1]
        current.status = DeploymentState.ROLLED_BACK
        current.last_updated = utcnow()
        logs = [f"Rolling back {deployment_id} to {target.deployment_id}"]
        return self._record(current.project_id, self._configs[target.deployment_id], logs)

    async def get_logs(self, deployment_id: str, limit: Optional[int] = None) -> List[str]:
        self._status(deployment_id)
        logs = self._logs.get(deployment_id, [])
        return list(logs[-limit:] if limit else logs)

    async def delete(self, deployment_id: str) -> None:
        self._status(deployment_id)
        del self._deployments[deployment_id]
        self._configs.pop(deployment_id, None)
        self._logs.pop(deployment_id, None)

    async def health_check(self) -> HealthCheckResult:
        running = sum(
            1 for d in self._deployments.values() if d.status == DeploymentState.RUNNING
        )
        return HealthCheckResult(healthy=True, status="healthy", details={"running": running})
