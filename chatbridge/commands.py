"""Command registry — static slash command list, install and removal."""

import sys
from typing import Dict, List, Optional, Sequence

from chatbridge.domain.models import CommandDefinition, ParameterSpec, ParameterType
from chatbridge.ports.outbound import CommandGateway


def _log(msg: str):
    print(msg, file=sys.stderr)


class RegistrationError(Exception):
    """A command could not be created, or has no handler."""


COMMANDS: List[CommandDefinition] = [
    CommandDefinition(
        name="chat",
        description="chat with the bot",
        parameters=(
            ParameterSpec(
                name="prompt",
                type=ParameterType.STRING,
                required=True,
                description="The prompt for the bot to respond to",
            ),
        ),
    ),
]


class CommandRegistry:
    """Pushes command definitions to the platform and removes them again.

    Scope is global when ``guild_id`` is None, otherwise the one guild.
    """

    def __init__(self, definitions: Sequence[CommandDefinition] = COMMANDS, guild_id: Optional[int] = None):
        names = [d.name for d in definitions]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate command names: {names}")
        self.definitions = list(definitions)
        self.guild_id = guild_id
        # name -> platform command id, in creation order
        self._created: Dict[str, str] = {}

    @property
    def registered(self) -> List[str]:
        return list(self._created)

    def _scope(self) -> str:
        return "globally" if self.guild_id is None else f"in guild {self.guild_id}"

    async def register(self, gateway: CommandGateway):
        """Create every command. The first failure raises RegistrationError."""
        for definition in self.definitions:
            try:
                command_id = await gateway.create_command(definition, self.guild_id)
            except Exception as e:
                raise RegistrationError(f"Cannot create '{definition.name}' command: {e}") from e
            self._created[definition.name] = command_id
            _log(f"[Registry] registered /{definition.name} {self._scope()} (id={command_id})")

    async def unregister(self, gateway: CommandGateway) -> List[str]:
        """Delete every created command, best effort. Returns names that failed."""
        failed: List[str] = []
        for name, command_id in list(self._created.items()):
            try:
                await gateway.delete_command(command_id, self.guild_id)
            except Exception as e:
                _log(f"[Registry] cannot delete '{name}' command: {e}")
                failed.append(name)
                continue
            del self._created[name]
            _log(f"[Registry] removed /{name}")
        return failed
