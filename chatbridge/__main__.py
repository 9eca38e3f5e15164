"""Entry point: ``python -m chatbridge [--guild ID]``."""

import asyncio
import sys
from typing import List, Optional

from chatbridge.adapters.discord_adapter import ChatBridgeClient, DiscordGateway
from chatbridge.commands import COMMANDS, CommandRegistry, RegistrationError
from chatbridge.completion import CompletionClient
from chatbridge.config import BotConfig, ConfigError, load_config
from chatbridge.dispatcher import InteractionDispatcher
from chatbridge.lifecycle import BotLifecycle, install_signal_handlers
from chatbridge.ports.outbound import GatewayConnectionError


def _log(msg: str):
    print(msg, file=sys.stderr)


def build_lifecycle(config: BotConfig) -> BotLifecycle:
    completion = CompletionClient(
        api_key=config.completion_api_key,
        model=config.model,
        endpoint=config.completion_url,
    )
    dispatcher = InteractionDispatcher(completion, trim_leading_char=config.trim_leading_char)
    client = ChatBridgeClient(dispatcher)
    gateway = DiscordGateway(client, config.bot_token)
    registry = CommandRegistry(COMMANDS, guild_id=config.guild_id)
    return BotLifecycle(gateway, registry, dispatcher)


async def _run(config: BotConfig):
    lifecycle = build_lifecycle(config)
    stop_event = asyncio.Event()
    install_signal_handlers(asyncio.get_running_loop(), stop_event)
    try:
        await lifecycle.run(stop_event)
    finally:
        await lifecycle.dispatcher.close()


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = load_config(argv)
    except ConfigError as e:
        _log(f"[ChatBridge] {e}")
        return 1

    try:
        asyncio.run(_run(config))
    except (GatewayConnectionError, RegistrationError) as e:
        _log(f"[ChatBridge] startup failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
