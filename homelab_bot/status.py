import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from .docker_service import DockerService
from .external_ip import ExternalIPService, is_valid_address
from .host import gateway_address
from .ip_state import ExternalIPStore
from .models import ContainerSummary, StatusReport
from .report import format_status_report

logger: logging.Logger = logging.getLogger(__name__)


def detect_ip_change(
    previous_ip: Optional[str],
    current_ip: Optional[str],
) -> Tuple[bool, bool]:
    """
    Compare the freshly resolved external IP with the persisted one.

    Returns ``(changed, should_persist)``. A change needs two valid
    addresses that differ. The current address is persisted on a change or
    when there is no valid previous value; an invalid reading never is.
    """
    changed: bool = (
        is_valid_address(current_ip)
        and is_valid_address(previous_ip)
        and current_ip != previous_ip
    )
    should_persist: bool = is_valid_address(current_ip) and (
        changed or not is_valid_address(previous_ip)
    )
    return changed, should_persist


# ------------------------------
# Status pipeline
# ------------------------------
class StatusPipeline:
    def __init__(
        self,
        ip_store: ExternalIPStore,
        external_ip_service: ExternalIPService,
        docker_service: DockerService,
        gateway_reader: Callable[[], str] = gateway_address,
    ) -> None:
        self.ip_store = ip_store
        self.external_ip_service = external_ip_service
        self.docker_service = docker_service
        self.gateway_reader = gateway_reader
        # Serializes read-modify-write of the persisted IP across triggers.
        self._ip_lock: asyncio.Lock = asyncio.Lock()

    async def _refresh_external_ip(self) -> Tuple[str, Optional[str], bool]:
        external_ip: str = await self.external_ip_service.lookup()
        async with self._ip_lock:
            last_external_ip: Optional[str] = self.ip_store.read()
            changed, should_persist = detect_ip_change(last_external_ip, external_ip)
            if should_persist:
                self.ip_store.write(external_ip)
        if changed:
            logger.info(
                "External IP changed from %s to %s", last_external_ip, external_ip
            )
        return external_ip, last_external_ip, changed

    async def _build(self) -> StatusReport:
        gateway_ip: str = self.gateway_reader()
        external_ip, last_external_ip, changed = await self._refresh_external_ip()
        containers: List[ContainerSummary] = (
            await self.docker_service.list_running_with_uptime()
        )
        return StatusReport(
            report=format_status_report(gateway_ip, external_ip, containers),
            external_ip=external_ip,
            last_external_ip=last_external_ip,
            external_ip_changed=changed,
        )

    async def build(self) -> Optional[StatusReport]:
        try:
            return await self._build()
        except Exception:
            logger.exception("Failed to build status report")
            return None
