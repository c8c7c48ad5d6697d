"""Tests for Docker inventory and control.

The Docker client is a MagicMock; no daemon is needed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from docker.errors import APIError, DockerException, NotFound

from homelab_bot.docker_service import (
    ContainerInventoryError,
    DockerService,
    clamp_log_lines,
    strip_container_name,
)
from homelab_bot.models import Outcome

NOW = datetime(2024, 5, 1, 12, 1, 30, tzinfo=timezone.utc)


def make_container(name: str, started_at: str = "2024-05-01T12:00:00.000000000Z", running: bool = True):
    container = MagicMock()
    container.name = name.lstrip("/")
    container.id = f"id-{name}"
    container.attrs = {
        "Name": name,
        "State": {"Running": running, "StartedAt": started_at},
    }
    return container


class TestClampLogLines:
    @pytest.mark.parametrize(
        ("requested", "expected"),
        [
            (0, (10, False)),
            (75, (50, True)),
            (25, (25, False)),
            (50, (50, False)),
            (1, (1, False)),
            (-3, (10, False)),
            (None, (10, False)),
            ("abc", (10, False)),
            ("30", (30, False)),
        ],
    )
    def test_clamping(self, requested, expected):
        assert clamp_log_lines(requested) == expected


class TestStripContainerName:
    def test_strips_single_leading_slash(self):
        assert strip_container_name("/web") == "web"

    def test_leaves_plain_names(self):
        assert strip_container_name("web") == "web"


class TestListRunningWithUptime:
    @pytest.mark.asyncio
    async def test_sorted_by_name_with_uptime(self, docker_client):
        docker_client.containers.list.return_value = [
            make_container("/zeta"),
            make_container("/alpha", started_at="2024-05-01T11:00:00Z"),
        ]
        service = DockerService(client=docker_client)

        summaries = await service.list_running_with_uptime(now=NOW)

        assert [summary.name for summary in summaries] == ["alpha", "zeta"]
        assert summaries[0].uptime == "1h 1m 30s"
        assert summaries[1].uptime == "1m 30s"
        docker_client.containers.list.assert_called_once_with(
            filters={"status": "running"}
        )

    @pytest.mark.asyncio
    async def test_missing_start_time(self, docker_client):
        docker_client.containers.list.return_value = [make_container("/web", started_at="")]
        service = DockerService(client=docker_client)

        summaries = await service.list_running_with_uptime(now=NOW)

        assert summaries[0].started_at is None
        assert summaries[0].uptime == "unknown uptime"

    @pytest.mark.asyncio
    async def test_no_running_containers(self, docker_client):
        docker_client.containers.list.return_value = []
        service = DockerService(client=docker_client)
        assert await service.list_running_with_uptime(now=NOW) == []

    @pytest.mark.asyncio
    async def test_list_failure_raises_inventory_error(self, docker_client):
        docker_client.containers.list.side_effect = APIError("daemon exploded")
        service = DockerService(client=docker_client)
        with pytest.raises(ContainerInventoryError):
            await service.list_running_with_uptime(now=NOW)

    @pytest.mark.asyncio
    async def test_container_vanishing_during_listing_aborts(self, docker_client):
        docker_client.containers.list.side_effect = NotFound("No such container: web")
        service = DockerService(client=docker_client)
        with pytest.raises(ContainerInventoryError):
            await service.list_running_with_uptime(now=NOW)


class TestControl:
    @pytest.mark.asyncio
    async def test_stop_running_container(self, docker_client):
        container = make_container("/web", running=True)
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).stop("web")

        assert result.outcome is Outcome.OK
        assert result.message == "Stopped web."
        container.stop.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_stop_already_stopped_is_a_noop(self, docker_client):
        container = make_container("/web", running=False)
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).stop("web")

        assert result.outcome is Outcome.UNCHANGED
        assert result.message == "web is already stopped."
        container.stop.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_already_running_is_a_noop(self, docker_client):
        container = make_container("/web", running=True)
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).start("web")

        assert result.outcome is Outcome.UNCHANGED
        assert result.message == "web is already running."
        container.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_stopped_container(self, docker_client):
        container = make_container("/web", running=False)
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).start("web")

        assert result.message == "Started web."
        container.start.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_restart(self, docker_client):
        container = make_container("/web")
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).restart("web")

        assert result.outcome is Outcome.OK
        assert result.message == "Restarted web."
        container.restart.assert_called_once_with()

    @pytest.mark.parametrize("verb", ["restart", "stop", "start"])
    @pytest.mark.asyncio
    async def test_missing_container_gets_generic_failure(self, docker_client, verb):
        docker_client.containers.get.side_effect = NotFound("No such container: ghost")
        service = DockerService(client=docker_client)

        result = await getattr(service, verb)("ghost")

        assert result.outcome is Outcome.FAILED
        assert result.message == f"Unable to {verb} ghost right now."

    @pytest.mark.asyncio
    async def test_runtime_error_does_not_leak_detail(self, docker_client):
        container = make_container("/web")
        container.restart.side_effect = APIError("permission denied on /var/run/docker.sock")
        docker_client.containers.get.return_value = container
        result = await DockerService(client=docker_client).restart("web")

        assert result.outcome is Outcome.FAILED
        assert result.message == "Unable to restart web right now."
        assert "permission" not in result.message

    @pytest.mark.asyncio
    async def test_unavailable_daemon_fails_single_command(self):
        factory = MagicMock(side_effect=DockerException("socket not found"))
        result = await DockerService(client_factory=factory).stop("web")

        assert result.outcome is Outcome.FAILED
        assert result.message == "Unable to stop web right now."


class TestLogs:
    @pytest.mark.asyncio
    async def test_default_tail(self, docker_client):
        container = make_container("/web")
        container.logs.return_value = b"line1\nline2\n"
        docker_client.containers.get.return_value = container

        result = await DockerService(client=docker_client).logs("web")

        assert result.outcome is Outcome.OK
        assert result.message == "```\nline1\nline2\n```"
        container.logs.assert_called_once_with(stdout=True, stderr=True, tail=10)

    @pytest.mark.asyncio
    async def test_capped_request(self, docker_client):
        container = make_container("/web")
        container.logs.return_value = b"line1\n"
        docker_client.containers.get.return_value = container

        result = await DockerService(client=docker_client).logs("web", 75)

        assert result.message.startswith("Showing the last 50 lines")
        container.logs.assert_called_once_with(stdout=True, stderr=True, tail=50)

    @pytest.mark.asyncio
    async def test_empty_logs(self, docker_client):
        container = make_container("/web")
        container.logs.return_value = b""
        docker_client.containers.get.return_value = container

        result = await DockerService(client=docker_client).logs("web", "5")
        assert result.message == "No logs available for web."

    @pytest.mark.asyncio
    async def test_missing_container(self, docker_client):
        docker_client.containers.get.side_effect = NotFound("No such container: ghost")
        result = await DockerService(client=docker_client).logs("ghost")

        assert result.outcome is Outcome.NOT_FOUND
        assert result.message == "Container ghost was not found."

    @pytest.mark.asyncio
    async def test_other_failure(self, docker_client):
        container = make_container("/web")
        container.logs.side_effect = APIError("boom")
        docker_client.containers.get.return_value = container

        result = await DockerService(client=docker_client).logs("web")

        assert result.outcome is Outcome.FAILED
        assert result.message == "Unable to fetch logs for web right now."
