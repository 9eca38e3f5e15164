"""What the core needs from the chat platform connection."""

from typing import Optional, Protocol

from chatbridge.domain.models import CommandDefinition


class GatewayConnectionError(Exception):
    """The platform connection could not be opened."""


class CommandGateway(Protocol):
    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def create_command(self, definition: CommandDefinition, guild_id: Optional[int]) -> str:
        """Create the command and return its platform id."""
        ...

    async def delete_command(self, command_id: str, guild_id: Optional[int]) -> None: ...
