import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .commands import Command, CommandDispatcher, Responder, parse_text_command
from .config import BotConfig
from .docker_service import MAX_LOG_LINES, DockerService
from .external_ip import ExternalIPService
from .ip_state import ExternalIPStore
from .scheduler import DailyReportScheduler, ReportDelivery
from .status import StatusPipeline

logger: logging.Logger = logging.getLogger(__name__)


# ------------------------------
# Logging configuration
# ------------------------------
def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


# ------------------------------
# Responders
# ------------------------------
class MessageResponder(Responder):
    def __init__(self, message: discord.Message) -> None:
        self.message = message

    async def send(self, text: str) -> None:
        await self.message.reply(text)


class InteractionResponder(Responder):
    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction

    async def acknowledge(self) -> None:
        # Status and Docker calls can outlast the 3s interaction window.
        if not self.interaction.response.is_done():
            await self.interaction.response.defer(thinking=True)

    async def send(self, text: str) -> None:
        await self.interaction.followup.send(text)


def command_from_interaction(
    interaction: discord.Interaction,
    name: str,
    target: Optional[str] = None,
    lines: Optional[int] = None,
) -> Command:
    return Command(
        name=name,
        target=target,
        lines=lines,
        channel_id=interaction.channel_id,
        user_id=interaction.user.id if interaction.user else None,
    )


# ------------------------------
# Slash commands
# ------------------------------
class HomelabCommandTree(app_commands.CommandTree):
    async def on_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        dispatcher: Optional[CommandDispatcher] = getattr(
            self.client, "dispatcher", None
        )
        if isinstance(error, app_commands.CommandNotFound) and dispatcher:
            await dispatcher.execute(
                command_from_interaction(interaction, error.name),
                InteractionResponder(interaction),
            )
            return
        logger.error("Slash command failed: %s", error, exc_info=error)


class HomelabCommands(commands.Cog):
    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self.dispatcher = dispatcher

    async def _run(
        self,
        interaction: discord.Interaction,
        name: str,
        target: Optional[str] = None,
        lines: Optional[int] = None,
    ) -> None:
        await self.dispatcher.execute(
            command_from_interaction(interaction, name, target, lines),
            InteractionResponder(interaction),
        )

    @app_commands.command(name="help", description="Show available commands")
    async def help_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "help")

    @app_commands.command(name="ping", description="Test bot responsiveness")
    async def ping_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "ping")

    @app_commands.command(name="status", description="Show homelab status")
    async def status_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "status")

    @app_commands.command(name="containers", description="List running containers")
    async def containers_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "containers")

    @app_commands.command(name="uptime", description="Show host + container uptime")
    async def uptime_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "uptime")

    @app_commands.command(name="ip", description="Show current homelab IP")
    async def ip_command(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, "ip")

    @app_commands.command(name="restart", description="Restart a Docker container by name")
    @app_commands.describe(container="Container name")
    async def restart_command(
        self, interaction: discord.Interaction, container: str
    ) -> None:
        await self._run(interaction, "restart", container)

    @app_commands.command(name="stop", description="Stop a Docker container by name")
    @app_commands.describe(container="Container name")
    async def stop_command(
        self, interaction: discord.Interaction, container: str
    ) -> None:
        await self._run(interaction, "stop", container)

    @app_commands.command(name="start", description="Start a Docker container by name")
    @app_commands.describe(container="Container name")
    async def start_command(
        self, interaction: discord.Interaction, container: str
    ) -> None:
        await self._run(interaction, "start", container)

    @app_commands.command(name="logs", description="Show recent Docker logs")
    @app_commands.describe(
        container="Container name",
        lines=f"Number of log lines (max {MAX_LOG_LINES})",
    )
    async def logs_command(
        self,
        interaction: discord.Interaction,
        container: str,
        lines: Optional[app_commands.Range[int, 1, 50]] = None,
    ) -> None:
        await self._run(interaction, "logs", container, lines)


# ------------------------------
# Discord Bot
# ------------------------------
class HomelabBot(commands.Bot):
    def __init__(
        self,
        config: BotConfig,
        pipeline: StatusPipeline,
        docker_service: DockerService,
    ) -> None:
        intents: discord.Intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(
            command_prefix=config.command_prefix,
            intents=intents,
            help_command=None,
            tree_cls=HomelabCommandTree,
        )

        self.config = config
        self.delivery = ReportDelivery(
            self, config.report_channel_id, config.allowed_user_id
        )
        self.dispatcher = CommandDispatcher(
            config=config,
            pipeline=pipeline,
            docker_service=docker_service,
            delivery=self.delivery,
        )
        self.scheduler = DailyReportScheduler(
            pipeline, self.delivery, config.report_fire_time
        )

    async def setup_hook(self) -> None:
        await self.add_cog(HomelabCommands(self.dispatcher))
        await self.sync_commands()

    async def sync_commands(self) -> None:
        if self.config.guild_id is not None:
            guild = discord.Object(id=self.config.guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info(
                "Registered %d slash commands for guild %d",
                len(synced),
                self.config.guild_id,
            )
        elif self.config.register_global:
            synced = await self.tree.sync()
            logger.info("Registered %d global slash commands", len(synced))
        else:
            logger.warning(
                "Slash commands not synced; set DISCORD_GUILD_ID or "
                "DISCORD_REGISTER_GLOBAL=true"
            )

    async def on_ready(self) -> None:  # type: ignore[override]
        assert self.user is not None
        logger.info("Logged in as %s", self.user)
        self.scheduler.start()

    async def on_message(self, message: discord.Message) -> None:  # type: ignore[override]
        if message.author.bot:
            return
        command: Optional[Command] = parse_text_command(
            message.content,
            channel_id=message.channel.id,
            user_id=message.author.id,
            prefix=self.config.command_prefix,
        )
        if command is None:
            return
        await self.dispatcher.execute(command, MessageResponder(message))

    async def close(self) -> None:
        self.scheduler.stop()
        await super().close()


# ------------------------------
# Main entrypoint
# ------------------------------
def build_bot(config: BotConfig) -> HomelabBot:
    ip_store = ExternalIPStore(config.state_dir)
    ip_store.ensure_state_dir()
    docker_service = DockerService()
    pipeline = StatusPipeline(
        ip_store=ip_store,
        external_ip_service=ExternalIPService(config.external_ip_url),
        docker_service=docker_service,
    )
    return HomelabBot(config, pipeline, docker_service)


def main() -> None:
    setup_logging()
    config = BotConfig.from_env()
    if config.debug:
        setup_logging(debug=True)
    bot = build_bot(config)
    bot.run(config.token, log_handler=None)


if __name__ == "__main__":
    main()
