"""
Contemplation bridge: hands thoughts to a background contemplation loop and
serves the insights it produces from a bounded, aggregating memory.
"""

from .bridge import BridgeProtocolAdapter, encode_command, parse_insight_line
from .errors import ContemplationError, ContemplationNotRunningError, ContemplationStartError
from .manager import ContemplationManager, create_contemplation_manager
from .memory import (
    ContemplationConfig,
    InsightKind,
    InsightMemoryConfig,
    InsightRecord,
    InsightStore,
)
from .tools import HELP_DOCUMENTATION, create_contemplation_tools

__all__ = [
    "BridgeProtocolAdapter",
    "ContemplationConfig",
    "ContemplationError",
    "ContemplationManager",
    "ContemplationNotRunningError",
    "ContemplationStartError",
    "HELP_DOCUMENTATION",
    "InsightKind",
    "InsightMemoryConfig",
    "InsightRecord",
    "InsightStore",
    "create_contemplation_manager",
    "create_contemplation_tools",
    "encode_command",
    "parse_insight_line",
]
