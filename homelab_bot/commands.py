import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import BotConfig
from .docker_service import ContainerInventoryError, DockerService
from .durations import format_duration
from .host import gateway_address, host_uptime_seconds
from .models import ContainerSummary, ControlResult, Outcome, StatusReport
from .report import format_container_list
from .scheduler import ReportDelivery, ip_change_alert
from .status import StatusPipeline

logger: logging.Logger = logging.getLogger(__name__)

HELP_TEXT: str = """Available commands:
!help — Show this help message
!ping — Test bot responsiveness
!status — Show homelab status
!containers — List running containers
!uptime — Show host + container uptime
!ip — Show current homelab IP
!restart <container-name> — Restart a Docker container by name
!stop <container-name> — Stop a Docker container by name
!start <container-name> — Start a Docker container by name
!logs <container-name> [lines] — Show recent Docker logs (max 50 lines)"""

PING_REPLY: str = "Hello there! 👋"
STATUS_UNAVAILABLE: str = "Unable to read container status right now."
CONTAINERS_UNAVAILABLE: str = "Unable to list running containers right now."
UPTIME_UNAVAILABLE: str = "Unable to read uptime right now."

COMMAND_NAMES: List[str] = [
    "help",
    "ping",
    "status",
    "containers",
    "uptime",
    "ip",
    "restart",
    "stop",
    "start",
    "logs",
]

USAGE: Dict[str, str] = {
    "restart": "Usage: !restart <container-name>",
    "stop": "Usage: !stop <container-name>",
    "start": "Usage: !start <container-name>",
    "logs": "Usage: !logs <container-name> [lines]",
}


@dataclass(frozen=True)
class Reply:
    text: str
    alert: Optional[str] = None


@dataclass(frozen=True)
class Command:
    name: str
    target: Optional[str] = None
    lines: Any = None
    channel_id: Optional[int] = None
    user_id: Optional[int] = None


def parse_text_command(
    content: str,
    channel_id: Optional[int] = None,
    user_id: Optional[int] = None,
    prefix: str = "!",
) -> Optional[Command]:
    """Turn a chat message into a Command, or None for unrelated chatter."""
    tokens: List[str] = content.strip().split()
    if not tokens or not tokens[0].startswith(prefix):
        return None
    name: str = tokens[0][len(prefix):]
    if name not in COMMAND_NAMES:
        return None
    arguments: List[str] = tokens[1:]
    return Command(
        name=name,
        target=arguments[0] if arguments else None,
        lines=arguments[1] if len(arguments) > 1 else None,
        channel_id=channel_id,
        user_id=user_id,
    )


class Responder:
    """Reply channel of one inbound command."""

    async def acknowledge(self) -> None:
        return None

    async def send(self, text: str) -> None:
        raise NotImplementedError


# ------------------------------
# Dispatcher / authorization gate
# ------------------------------
class CommandDispatcher:
    def __init__(
        self,
        config: BotConfig,
        pipeline: StatusPipeline,
        docker_service: DockerService,
        delivery: ReportDelivery,
        gateway_reader: Callable[[], str] = gateway_address,
        uptime_reader: Callable[[], float] = host_uptime_seconds,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.docker_service = docker_service
        self.delivery = delivery
        self.gateway_reader = gateway_reader
        self.uptime_reader = uptime_reader
        self._handlers: Dict[str, Callable[[Command], Awaitable[Reply]]] = {
            "help": self._help,
            "ping": self._ping,
            "status": self._status,
            "containers": self._containers,
            "uptime": self._uptime,
            "ip": self._ip,
            "restart": self._restart,
            "stop": self._stop,
            "start": self._start,
            "logs": self._logs,
        }

    def is_authorized(self, channel_id: Optional[int], user_id: Optional[int]) -> bool:
        allowed_channel: Optional[int] = self.config.allowed_channel_id
        if allowed_channel is not None and channel_id != allowed_channel:
            return False
        allowed_user: Optional[int] = self.config.allowed_user_id
        if allowed_user is not None and user_id != allowed_user:
            return False
        return True

    async def execute(self, command: Command, responder: Responder) -> bool:
        """Run one command. Returns False when it was silently ignored."""
        if not self.is_authorized(command.channel_id, command.user_id):
            logger.debug(
                "Ignoring %s from channel=%s user=%s",
                command.name,
                command.channel_id,
                command.user_id,
            )
            return False

        await responder.acknowledge()
        handler = self._handlers.get(command.name)
        if handler is None:
            await responder.send(f"Unknown command: {command.name}")
            return True

        logger.info("Handling %s from user=%s", command.name, command.user_id)
        reply: Reply = await handler(command)
        await responder.send(reply.text)
        if reply.alert:
            await self.delivery.send(reply.alert)
        return True

    # --- handlers ---

    async def _help(self, command: Command) -> Reply:
        return Reply(HELP_TEXT)

    async def _ping(self, command: Command) -> Reply:
        return Reply(PING_REPLY)

    async def _status(self, command: Command) -> Reply:
        status_report: Optional[StatusReport] = await self.pipeline.build()
        if status_report is None:
            return Reply(STATUS_UNAVAILABLE)
        return Reply(status_report.report, alert=ip_change_alert(status_report))

    async def _containers(self, command: Command) -> Reply:
        try:
            containers: List[ContainerSummary] = (
                await self.docker_service.list_running_with_uptime()
            )
        except ContainerInventoryError:
            return Reply(CONTAINERS_UNAVAILABLE)
        return Reply(format_container_list(containers))

    async def _uptime(self, command: Command) -> Reply:
        try:
            host_uptime: str = format_duration(self.uptime_reader() * 1000)
            containers = await self.docker_service.list_running_with_uptime()
        except Exception as uptime_error:
            logger.error("Failed to read uptime: %s", uptime_error)
            return Reply(UPTIME_UNAVAILABLE)
        return Reply(f"Host uptime: {host_uptime}\nRunning containers: {len(containers)}")

    async def _ip(self, command: Command) -> Reply:
        return Reply(f"Host IP: {self.gateway_reader()}")

    async def _control(
        self,
        command: Command,
        operation: Callable[[str], Awaitable[ControlResult]],
    ) -> Reply:
        if not command.target:
            return Reply(USAGE[command.name])
        result: ControlResult = await operation(command.target)
        return self._control_reply(command, result)

    async def _restart(self, command: Command) -> Reply:
        return await self._control(command, self.docker_service.restart)

    async def _stop(self, command: Command) -> Reply:
        return await self._control(command, self.docker_service.stop)

    async def _start(self, command: Command) -> Reply:
        return await self._control(command, self.docker_service.start)

    async def _logs(self, command: Command) -> Reply:
        if not command.target:
            return Reply(USAGE["logs"])
        result: ControlResult = await self.docker_service.logs(
            command.target, command.lines
        )
        return self._control_reply(command, result)

    def _control_reply(self, command: Command, result: ControlResult) -> Reply:
        if result.outcome in (Outcome.FAILED, Outcome.NOT_FOUND):
            logger.warning(
                "%s %s did not complete: %s",
                command.name,
                command.target,
                result.outcome.value,
            )
        elif result.outcome is Outcome.UNCHANGED:
            logger.info("%s %s left state unchanged", command.name, command.target)
        return Reply(result.message)
