"""Routes slash command interactions to their handlers."""

import sys
from enum import Enum
from typing import Awaitable, Callable, Dict, Sequence

from chatbridge.commands import RegistrationError
from chatbridge.completion import CompletionClient
from chatbridge.domain.models import CommandDefinition
from chatbridge.ports.inbound import InteractionEvent

# Discord rejects message content above this length
MAX_MESSAGE_LENGTH = 2000

Handler = Callable[[InteractionEvent], Awaitable[None]]


def _log(msg: str):
    print(msg, file=sys.stderr)


class ChatCommand(str, Enum):
    CHAT = "chat"


def format_reply(prompt: str, response: str) -> str:
    content = f"**Prompt:\n** {prompt}\n**Response:** {response}"
    if len(content) > MAX_MESSAGE_LENGTH:
        content = content[: MAX_MESSAGE_LENGTH - 1] + "…"
    return content


class InteractionDispatcher:
    """Maps command names to handlers and runs them.

    Unknown command names are ignored: the platform may deliver interaction
    kinds this bot does not handle.
    """

    def __init__(self, completion_client: CompletionClient, trim_leading_char: bool = True):
        self._completion = completion_client
        # Completion API prefixes its text with a newline/space artifact
        self.trim_leading_char = trim_leading_char
        self._routes: Dict[ChatCommand, Handler] = {
            ChatCommand.CHAT: self._handle_chat,
        }

    @property
    def command_names(self) -> Sequence[str]:
        return [c.value for c in self._routes]

    def validate(self, definitions: Sequence[CommandDefinition]):
        """Raise RegistrationError if any definition has no handler."""
        missing = [d.name for d in definitions if d.name not in self.command_names]
        if missing:
            raise RegistrationError(f"No handler for command(s): {', '.join(missing)}")

    async def on_interaction(self, event: InteractionEvent):
        try:
            command = ChatCommand(event.command_name)
        except ValueError:
            _log(f"[Dispatcher] ignoring unknown command {event.command_name!r}")
            return
        await self._routes[command](event)

    async def _handle_chat(self, event: InteractionEvent):
        prompt = event.require_string("prompt")

        result = await self._completion.complete(prompt)
        if not result.success:
            _log(f"[Dispatcher] error querying completion API ({result.error_kind.value}): {result.error}")
            return

        response = result.text
        if self.trim_leading_char:
            response = response[1:]

        await event.reply.send(format_reply(prompt, response))

    async def close(self):
        await self._completion.close()
