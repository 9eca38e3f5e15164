"""Discord adapter — bridges discord.Client to the InteractionDispatcher.

ChatBridgeClient converts Discord application-command interactions to
InteractionEvent and delegates to the dispatcher. DiscordGateway implements
the CommandGateway port on top of the client's login/connect and the
application-command HTTP routes.
"""

import asyncio
import sys
from typing import Any, Dict, Optional

import discord

from chatbridge.dispatcher import InteractionDispatcher
from chatbridge.domain.models import CommandDefinition, ParameterType
from chatbridge.ports.inbound import InteractionEvent, ReplyAlreadySentError
from chatbridge.ports.outbound import GatewayConnectionError


def _log(msg: str):
    print(msg, file=sys.stderr)


_OPTION_TYPES: Dict[ParameterType, discord.AppCommandOptionType] = {
    ParameterType.STRING: discord.AppCommandOptionType.string,
    ParameterType.INTEGER: discord.AppCommandOptionType.integer,
    ParameterType.BOOLEAN: discord.AppCommandOptionType.boolean,
    ParameterType.NUMBER: discord.AppCommandOptionType.number,
}


def command_payload(definition: CommandDefinition) -> Dict[str, Any]:
    """Serialize a CommandDefinition to the application-command JSON payload."""
    return {
        "name": definition.name,
        "description": definition.description,
        "type": discord.AppCommandType.chat_input.value,
        "options": [
            {
                "type": _OPTION_TYPES[p.type].value,
                "name": p.name,
                "description": p.description,
                "required": p.required,
            }
            for p in definition.parameters
        ],
    }


class DiscordReplyChannel:
    """ReplyChannel implementation answering one discord.Interaction."""

    def __init__(self, interaction: discord.Interaction):
        self._interaction = interaction

    async def send(self, content: str) -> None:
        if self._interaction.response.is_done():
            raise ReplyAlreadySentError(f"interaction {self._interaction.id} already answered")
        # Discord drops an unanswered interaction after ~3s, shorter than the
        # 5s completion timeout; a late send fails with "Unknown interaction".
        await self._interaction.response.send_message(content)


def event_from_interaction(interaction: discord.Interaction) -> InteractionEvent:
    """Convert an application-command interaction to an InteractionEvent."""
    data = interaction.data or {}
    parameters = {
        opt["name"]: opt.get("value")
        for opt in data.get("options", [])
        if "value" in opt
    }
    return InteractionEvent(
        command_name=data.get("name", ""),
        parameters=parameters,
        reply=DiscordReplyChannel(interaction),
    )


class ChatBridgeClient(discord.Client):
    """Thin Discord client that delegates slash commands to the dispatcher.

    discord.py runs each event handler in its own task, so a slow completion
    call does not hold up heartbeats or other interactions.
    """

    def __init__(self, dispatcher: InteractionDispatcher, **discord_kwargs):
        super().__init__(intents=discord.Intents.default(), **discord_kwargs)
        self._dispatcher = dispatcher

    async def on_ready(self):
        _log(f"[ChatBridge] Bot is up! logged in as {self.user}")

    async def on_interaction(self, interaction: discord.Interaction):
        if interaction.type != discord.InteractionType.application_command:
            return
        await self._dispatcher.on_interaction(event_from_interaction(interaction))


class DiscordGateway:
    """CommandGateway implementation backed by a discord.Client."""

    def __init__(self, client: discord.Client, token: str):
        self._client = client
        self._token = token
        self._connect_task: Optional[asyncio.Task] = None

    async def open(self) -> None:
        """Log in, start the gateway connection and wait until it is ready."""
        try:
            await self._client.login(self._token)
        except (discord.LoginFailure, discord.HTTPException) as e:
            await self._client.close()
            raise GatewayConnectionError(f"Cannot open the session: {e}") from e

        self._connect_task = asyncio.create_task(self._client.connect())
        ready = asyncio.create_task(self._client.wait_until_ready())
        done, _ = await asyncio.wait(
            {self._connect_task, ready}, return_when=asyncio.FIRST_COMPLETED
        )
        if ready in done:
            return

        ready.cancel()
        exc = self._connect_task.exception() if not self._connect_task.cancelled() else None
        await self.close()
        raise GatewayConnectionError(f"Cannot open the session: {exc or 'connection closed before ready'}")

    async def close(self) -> None:
        await self._client.close()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        self._connect_task = None

    def _application_id(self) -> int:
        application_id = self._client.application_id
        if application_id is None:
            raise GatewayConnectionError("application id unknown; gateway not open")
        return application_id

    async def create_command(self, definition: CommandDefinition, guild_id: Optional[int]) -> str:
        payload = command_payload(definition)
        app_id = self._application_id()
        if guild_id is None:
            data = await self._client.http.upsert_global_command(app_id, payload)
        else:
            data = await self._client.http.upsert_guild_command(app_id, guild_id, payload)
        return str(data["id"])

    async def delete_command(self, command_id: str, guild_id: Optional[int]) -> None:
        app_id = self._application_id()
        if guild_id is None:
            await self._client.http.delete_global_command(app_id, command_id)
        else:
            await self._client.http.delete_guild_command(app_id, guild_id, command_id)
