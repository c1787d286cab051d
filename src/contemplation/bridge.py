"""
Line protocol between the manager and the contemplation subprocess.

Outbound (stdin), one JSON object per line:
    {"action": "add_thought", "thought_type", "content", "priority", "thought_id"}
    {"action": "status"}
    {"action": "stop"}

Inbound (stdout), one JSON object per line; only lines carrying a truthy
"has_insight" become insight records:
    {"has_insight": true, "thought_id", "thought_type", "insight", "significance"}

Everything else on stdout (log chatter, status replies, broken JSON) is
dropped without touching the store.
"""

import json
import logging
from typing import Optional, TextIO

from .errors import ContemplationNotRunningError
from .memory.records import InsightKind, InsightRecord, normalize_significance
from .memory.store import InsightStore

logger = logging.getLogger(__name__)

COMMAND_ACTIONS = ("add_thought", "status", "stop")


def parse_insight_line(raw_line: str) -> Optional[InsightRecord]:
    """Parse one stdout line into an InsightRecord, or None if it is not one."""
    line = raw_line.strip() if raw_line else ""
    if not line:
        return None

    try:
        message = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Ignoring non-JSON line from contemplation loop: %.80s", line)
        return None

    if not isinstance(message, dict) or message.get("has_insight") is not True:
        return None

    thought_id = message.get("thought_id")
    content = message.get("insight")
    if not isinstance(thought_id, str) or not thought_id:
        logger.debug("Ignoring insight without thought_id: %.80s", line)
        return None
    if not isinstance(content, str):
        logger.debug("Ignoring insight %s without text", thought_id)
        return None

    try:
        kind = InsightKind(message.get("thought_type"))
    except ValueError:
        logger.debug(
            "Ignoring insight %s with unknown type %r",
            thought_id,
            message.get("thought_type"),
        )
        return None

    return InsightRecord(
        id=thought_id,
        kind=kind,
        content=content,
        significance=normalize_significance(message.get("significance")),
    )


def encode_command(action: str, **payload) -> str:
    """Serialize a command as a single newline-terminated JSON line."""
    if action not in COMMAND_ACTIONS:
        raise ValueError(f"Unknown contemplation command: {action}")
    return json.dumps({"action": action, **payload}, ensure_ascii=False) + "\n"


class BridgeProtocolAdapter:
    """
    Translates subprocess lines into store writes and commands into lines.

    The adapter does not own the subprocess; the manager attaches the
    process's stdin while it runs and detaches it on stop.
    """

    def __init__(self, store: InsightStore, stdin: Optional[TextIO] = None):
        self.store = store
        self._stdin = stdin

    @property
    def attached(self) -> bool:
        return self._stdin is not None

    def attach(self, stdin: TextIO):
        self._stdin = stdin

    def detach(self):
        self._stdin = None

    def on_line(self, raw_line: str) -> bool:
        """Handle one stdout line. Returns True if an insight was stored."""
        record = parse_insight_line(raw_line)
        if record is None:
            return False
        return self.store.ingest(record)

    def send_command(self, action: str, **payload):
        """Fire-and-forget: write the command and return without a reply."""
        if self._stdin is None:
            raise ContemplationNotRunningError()
        self._stdin.write(encode_command(action, **payload))
        self._stdin.flush()
