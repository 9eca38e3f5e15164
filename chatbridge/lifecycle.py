"""Process lifecycle — startup sequencing, serving, graceful shutdown."""

import asyncio
import signal
import sys
from enum import Enum

from chatbridge.commands import CommandRegistry
from chatbridge.dispatcher import InteractionDispatcher
from chatbridge.ports.outbound import CommandGateway


def _log(msg: str):
    print(msg, file=sys.stderr)


class LifecycleState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CONNECTED = "connected"
    COMMANDS_REGISTERED = "commands_registered"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class BotLifecycle:
    """Drives the bot through startup, serving and shutdown.

    Startup errors (GatewayConnectionError, RegistrationError) propagate;
    shutdown is best effort and never raises for a failed deregistration.
    """

    def __init__(self, gateway: CommandGateway, registry: CommandRegistry, dispatcher: InteractionDispatcher):
        self.gateway = gateway
        self.registry = registry
        self.dispatcher = dispatcher
        self.state = LifecycleState.UNAUTHENTICATED

    async def start(self):
        self.dispatcher.validate(self.registry.definitions)

        await self.gateway.open()
        self.state = LifecycleState.CONNECTED

        try:
            await self.registry.register(self.gateway)
        except Exception:
            # Commands created before the failure would otherwise stay listed
            await self.registry.unregister(self.gateway)
            await self.gateway.close()
            self.state = LifecycleState.CLOSED
            raise
        self.state = LifecycleState.COMMANDS_REGISTERED

        self.state = LifecycleState.SERVING

    async def serve(self, stop_event: asyncio.Event):
        await stop_event.wait()

    async def shutdown(self):
        if self.state in (LifecycleState.SHUTTING_DOWN, LifecycleState.CLOSED):
            return
        if self.state == LifecycleState.UNAUTHENTICATED:
            self.state = LifecycleState.CLOSED
            return

        self.state = LifecycleState.SHUTTING_DOWN
        _log("[Lifecycle] Gracefully shutting down; cleaning up commands")
        failed = await self.registry.unregister(self.gateway)
        if failed:
            _log(f"[Lifecycle] commands left registered: {', '.join(failed)}")

        await self.gateway.close()
        self.state = LifecycleState.CLOSED

    async def run(self, stop_event: asyncio.Event):
        await self.start()
        try:
            await self.serve(stop_event)
        finally:
            await self.shutdown()


def install_signal_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event):
    """Set ``stop_event`` on SIGINT/SIGTERM."""
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))
