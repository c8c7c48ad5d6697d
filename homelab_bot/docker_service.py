import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import docker
from docker.errors import NotFound

from .durations import format_uptime, parse_docker_timestamp
from .models import ContainerSummary, ControlResult, Outcome
from .report import format_logs_reply

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_LOG_LINES: int = 10
MAX_LOG_LINES: int = 50


class ContainerInventoryError(Exception):
    """Raised when the running container list cannot be built."""


def clamp_log_lines(requested: Any) -> Tuple[int, bool]:
    """
    Return the effective log line count and whether the maximum was applied.

    Missing, unparsable or non-positive values fall back to the default;
    anything above the maximum is capped.
    """
    if requested is None or isinstance(requested, bool):
        return DEFAULT_LOG_LINES, False
    try:
        line_count: int = int(str(requested).strip())
    except ValueError:
        return DEFAULT_LOG_LINES, False
    if line_count < 1:
        return DEFAULT_LOG_LINES, False
    if line_count > MAX_LOG_LINES:
        return MAX_LOG_LINES, True
    return line_count, False


def strip_container_name(raw_name: str) -> str:
    return raw_name[1:] if raw_name.startswith("/") else raw_name


# ------------------------------
# Docker inventory / control service
# ------------------------------
class DockerService:
    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        client_factory: Callable[[], docker.DockerClient] = docker.from_env,
    ) -> None:
        self._client: Optional[docker.DockerClient] = client
        self._client_factory = client_factory

    @property
    def client(self) -> docker.DockerClient:
        # Created on first use so an unavailable daemon fails single commands.
        if self._client is None:
            self._client = self._client_factory()
            logger.info("Docker client initialized successfully")
        return self._client

    def _list_running_sync(self, now: datetime) -> List[ContainerSummary]:
        summaries: List[ContainerSummary] = []
        for container_obj in self.client.containers.list(
            filters={"status": "running"}
        ):
            attrs: Dict[str, Any] = container_obj.attrs
            raw_name: str = (
                attrs.get("Name") or container_obj.name or container_obj.id
            )
            started_at: Optional[datetime] = parse_docker_timestamp(
                attrs.get("State", {}).get("StartedAt")
            )
            summaries.append(
                ContainerSummary(
                    name=strip_container_name(raw_name),
                    started_at=started_at,
                    uptime=format_uptime(started_at, now),
                )
            )
        summaries.sort(key=lambda summary: summary.name)
        return summaries

    async def list_running_with_uptime(
        self,
        now: Optional[datetime] = None,
    ) -> List[ContainerSummary]:
        current_time: datetime = now or datetime.now(timezone.utc)
        try:
            return await asyncio.to_thread(self._list_running_sync, current_time)
        except Exception as list_error:
            logger.error("Failed to list running containers: %s", list_error)
            raise ContainerInventoryError(
                "Unable to list running containers"
            ) from list_error

    # --- control ---

    def _restart_sync(self, container_name: str) -> ControlResult:
        self.client.containers.get(container_name).restart()
        return ControlResult(Outcome.OK, f"Restarted {container_name}.")

    def _stop_sync(self, container_name: str) -> ControlResult:
        container_obj = self.client.containers.get(container_name)
        if not container_obj.attrs.get("State", {}).get("Running", False):
            return ControlResult(
                Outcome.UNCHANGED, f"{container_name} is already stopped."
            )
        container_obj.stop()
        return ControlResult(Outcome.OK, f"Stopped {container_name}.")

    def _start_sync(self, container_name: str) -> ControlResult:
        container_obj = self.client.containers.get(container_name)
        if container_obj.attrs.get("State", {}).get("Running", False):
            return ControlResult(
                Outcome.UNCHANGED, f"{container_name} is already running."
            )
        container_obj.start()
        return ControlResult(Outcome.OK, f"Started {container_name}.")

    async def _control(
        self,
        verb: str,
        operation: Callable[[str], ControlResult],
        container_name: str,
    ) -> ControlResult:
        try:
            result: ControlResult = await asyncio.to_thread(operation, container_name)
        except Exception as control_error:
            logger.error(
                "Failed to %s container %s: %s", verb, container_name, control_error
            )
            return ControlResult(
                Outcome.FAILED, f"Unable to {verb} {container_name} right now."
            )
        logger.info("%s: %s", container_name, result.message)
        return result

    async def restart(self, container_name: str) -> ControlResult:
        return await self._control("restart", self._restart_sync, container_name)

    async def stop(self, container_name: str) -> ControlResult:
        return await self._control("stop", self._stop_sync, container_name)

    async def start(self, container_name: str) -> ControlResult:
        return await self._control("start", self._start_sync, container_name)

    # --- logs ---

    def _logs_sync(self, container_name: str, line_count: int) -> str:
        container_obj = self.client.containers.get(container_name)
        raw_logs: bytes = container_obj.logs(
            stdout=True, stderr=True, tail=line_count
        )
        return raw_logs.decode("utf-8", errors="replace")

    async def logs(self, container_name: str, requested_lines: Any = None) -> ControlResult:
        line_count, capped = clamp_log_lines(requested_lines)
        try:
            log_text: str = await asyncio.to_thread(
                self._logs_sync, container_name, line_count
            )
        except NotFound as missing_error:
            logger.warning(
                "Cannot fetch logs for %s: container not found (%s)",
                container_name,
                missing_error,
            )
            return ControlResult(
                Outcome.NOT_FOUND, f"Container {container_name} was not found."
            )
        except Exception as logs_error:
            logger.error(
                "Failed to fetch logs for container %s: %s",
                container_name,
                logs_error,
            )
            return ControlResult(
                Outcome.FAILED, f"Unable to fetch logs for {container_name} right now."
            )
        return ControlResult(
            Outcome.OK,
            format_logs_reply(container_name, log_text, line_count, capped),
        )
