import logging
from datetime import time
from typing import Any, Optional

import discord
from discord.ext import tasks

from .external_ip import is_valid_address
from .models import StatusReport
from .report import format_ip_change_alert
from .status import StatusPipeline

logger: logging.Logger = logging.getLogger(__name__)


def ip_change_alert(status_report: StatusReport) -> Optional[str]:
    previous_ip: Optional[str] = status_report.last_external_ip
    current_ip: str = status_report.external_ip
    if (
        not status_report.external_ip_changed
        or not is_valid_address(previous_ip)
        or not is_valid_address(current_ip)
        or previous_ip == current_ip
    ):
        return None
    return format_ip_change_alert(previous_ip, current_ip)  # type: ignore[arg-type]


# ------------------------------
# Report delivery (channel, DM fallback)
# ------------------------------
class ReportDelivery:
    def __init__(
        self,
        client: discord.Client,
        report_channel_id: Optional[int],
        fallback_user_id: Optional[int],
    ) -> None:
        self.client = client
        self.report_channel_id = report_channel_id
        self.fallback_user_id = fallback_user_id

    async def _send_to_channel(self, channel_id: int, message: str) -> bool:
        try:
            channel: Any = self.client.get_channel(channel_id)
            if channel is None:
                channel = await self.client.fetch_channel(channel_id)
            if not isinstance(channel, discord.abc.Messageable):
                logger.error("Report channel %d is not text-based.", channel_id)
                return False
            await channel.send(message)
            return True
        except Exception as channel_error:
            logger.error("Failed to send report to channel: %s", channel_error)
            return False

    async def _send_direct_message(self, user_id: int, message: str) -> bool:
        try:
            user: Any = self.client.get_user(user_id)
            if user is None:
                user = await self.client.fetch_user(user_id)
            await user.send(message)
            return True
        except Exception as dm_error:
            logger.error("Failed to send report via DM: %s", dm_error)
            return False

    async def send(self, message: str) -> bool:
        if self.report_channel_id is not None:
            if await self._send_to_channel(self.report_channel_id, message):
                return True

        if self.fallback_user_id is None:
            logger.error("DISCORD_ALLOWED_USER_ID is missing; cannot send report.")
            return False
        return await self._send_direct_message(self.fallback_user_id, message)


# ------------------------------
# Daily report scheduler
# ------------------------------
class DailyReportScheduler:
    def __init__(
        self,
        pipeline: StatusPipeline,
        delivery: ReportDelivery,
        fire_at: time,
    ) -> None:
        self.pipeline = pipeline
        self.delivery = delivery
        self.fire_at = fire_at

        # Fires at a wall-clock time; missed runs are not replayed.
        self.report_task = tasks.loop(time=fire_at)(self.send_scheduled_report)

    def start(self) -> None:
        if not self.report_task.is_running():
            self.report_task.start()
            logger.info(
                "Daily report scheduled at %s (%s)",
                self.fire_at.strftime("%H:%M"),
                self.fire_at.tzinfo,
            )

    def stop(self) -> None:
        self.report_task.cancel()

    async def send_scheduled_report(self) -> None:
        status_report: Optional[StatusReport] = await self.pipeline.build()
        if status_report is None:
            logger.error("Skipping scheduled report; status message unavailable.")
            return

        await self.delivery.send(status_report.report)
        alert: Optional[str] = ip_change_alert(status_report)
        if alert:
            await self.delivery.send(alert)
