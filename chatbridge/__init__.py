"""Chat Bridge — Discord slash commands relayed to a text-completion API."""

from chatbridge.config import BotConfig, ConfigError, load_config
from chatbridge.completion import CompletionClient, MalformedResponseError, parse_completion_response
from chatbridge.commands import COMMANDS, CommandRegistry, RegistrationError
from chatbridge.dispatcher import ChatCommand, InteractionDispatcher, format_reply
from chatbridge.lifecycle import BotLifecycle, LifecycleState

__all__ = [
    "BotConfig",
    "ConfigError",
    "load_config",
    "CompletionClient",
    "MalformedResponseError",
    "parse_completion_response",
    "COMMANDS",
    "CommandRegistry",
    "RegistrationError",
    "ChatCommand",
    "InteractionDispatcher",
    "format_reply",
    "BotLifecycle",
    "LifecycleState",
]
