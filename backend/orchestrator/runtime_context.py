"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution (transport, settings, companion channel,
notifier).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from orchestrator.notifications import Notification
from orchestrator.target import ConnectionTarget

if TYPE_CHECKING:
    from session.link_session import LinkSession


# ---------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class TransportProtocol(Protocol):
    """
    Fire-and-forget avatar-link sender.

    Both calls raise adapters.osc.base.TransportError on failure.
    """

    def send_ping(self, host: str, port: int) -> None: ...
    def send_telemetry(self, value: float, host: str, port: int) -> None: ...


@runtime_checkable
class ConfigStoreProtocol(Protocol):
    def load(self) -> ConnectionTarget:
        """
        Return the saved target.

        Port defaults to DEFAULT_TARGET_PORT when absent or zero.
        """
    def save(self, host: str, port: int) -> None: ...


@runtime_checkable
class CompanionChannelProtocol(Protocol):
    """
    Outbound side of the companion relay.

    send_command raises session.companion.CompanionSendError on failure.
    """

    async def send_command(self, command: str) -> None: ...


@runtime_checkable
class NotifierProtocol(Protocol):
    def publish(self, notification: Notification) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources so
    Runtime does not need to synchronize or cache anything. A companion
    channel attached after construction is picked up on the next command.

    Runtime is allowed to:
    - Call the transport, settings store and companion channel
    - Publish notifications

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: LinkSession) -> None:
        self.session = session

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def transport(self) -> TransportProtocol:
        return self.session.transport

    @property
    def config_store(self) -> ConfigStoreProtocol:
        return self.session.settings_store

    @property
    def companion_channel(self) -> CompanionChannelProtocol | None:
        return self.session.companion_channel

    @property
    def notifier(self) -> NotifierProtocol:
        return self.session.notifier
