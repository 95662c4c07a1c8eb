"""
Delivery of queue-mutation commands to the playback collaborator.

Commands are fire-and-forget: a failed command is logged and dropped, never
retried, because a late mutation of a live queue is worse than a missed one.
Commands carry full id sets, so redelivering one is harmless.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import requests

from curator.adaptive.models import QueueCommand
from curator.playlist.errors import QueueCommandError

logger = logging.getLogger(__name__)


class RecordingSink:
    """Keeps commands in memory; used by tests and dry runs."""

    def __init__(self):
        self.commands: List[QueueCommand] = []

    def send(self, command: QueueCommand) -> None:
        self.commands.append(command)


class HttpCommandSink:
    """
    POST commands as JSON to the playback-queue service.

    Args:
        url: Endpoint accepting ``{sessionId, action, trackIds, reason}``
        timeout: Per-request timeout in seconds
        session: Optional requests.Session (one is created otherwise)
        token: Optional bearer token
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def send(self, command: QueueCommand) -> None:
        try:
            response = self.session.post(self.url, json=command.as_dict(), timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise QueueCommandError(f"{command.action} for session {command.session_id} failed: {e}") from e


class QueueCommandDispatcher:
    """Send commands through a sink, logging and dropping failures."""

    def __init__(self, sink):
        self.sink = sink
        self.sent = 0
        self.dropped = 0

    def dispatch(self, command: QueueCommand) -> bool:
        """Returns True if the sink accepted the command."""
        try:
            self.sink.send(command)
        except Exception as e:
            self.dropped += 1
            logger.warning(f"Dropped queue command {command.action} ({len(command.track_ids)} tracks): {e}")
            return False
        self.sent += 1
        logger.info(
            f"Queue command {command.action} for session {command.session_id}: "
            f"{len(command.track_ids)} tracks ({command.reason})"
        )
        return True
