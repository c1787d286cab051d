"""
LangChain Tools 定义

把 ContemplationManager 的调用面包装成 @tool，供 tool-calling agent 使用：
- start_contemplation / stop_contemplation: 子进程生命周期
- send_thought: 提交 thought
- get_insights / set_threshold / get_memory_stats: insight 检索与记忆状态
- get_status / clear_scratch / help

工具不会抛异常：失败以 "[FAILED] ..." 文本返回，agent 可以自行重试。
"""

import json
from typing import Optional

from langchain.tools import tool

from .errors import ContemplationError
from .manager import ContemplationManager


HELP_DOCUMENTATION = """
# Contemplation Bridge

Interface to a background contemplation loop - a persistent subprocess that:
- Processes thoughts asynchronously between conversations
- Reports insights back as they are produced
- Saves medium-significance thoughts to a temporary scratch area organized by day

Insights are kept in a bounded memory (100 by default). Near-duplicate insights
are aggregated into one record, each insight is returned at most once, and old
consumed insights are pruned after 24 hours unless their significance is 8+.

## Available Functions:

### start_contemplation()
Starts the background contemplation loop if not already running.

### send_thought(thought_type, content, priority?)
Sends a thought for background processing.
- thought_type: "pattern", "connection", "question", or "general"
- content: The thought content to process
- priority: Optional priority (1-10, default 5)
Returns: Thought ID for tracking

### get_insights(thought_type?, limit?, min_significance?)
Retrieves processed insights. Aggregated insights carry similar_count and member_ids.
- thought_type: Optional filter by type
- limit: Max number of insights (default 10)
- min_significance: Optional minimum significance (defaults to the current threshold)

### set_threshold(threshold)
Sets the default minimum significance (1-10) used by get_insights.

### get_memory_stats()
Returns insight memory usage: total, unused, high significance, aggregated, limit, threshold.

### get_status()
Gets the current status of the contemplation loop.

### stop_contemplation()
Stops the contemplation loop. Insights not yet delivered are lost.

### clear_scratch()
Clears temporary scratch notes. Returns the number of files cleared.

### help()
Returns this documentation.

## Thought Types:
- **pattern**: Notice recurring themes across conversations
- **connection**: Find links between disparate ideas
- **question**: Explore interesting questions that arise
- **general**: Open-ended reflection
"""


def _dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


def create_contemplation_tools(manager: ContemplationManager) -> list:
    """Build the tool list bound to one manager instance."""

    @tool("start_contemplation")
    def start_contemplation() -> str:
        """Start the background contemplation loop."""
        try:
            return manager.start()
        except ContemplationError as e:
            return f"[FAILED] {e}"

    @tool("send_thought")
    def send_thought(thought_type: str, content: str, priority: int = 5) -> str:
        """
        Send a thought for background processing.

        Args:
            thought_type: One of "pattern", "connection", "question", "general"
            content: The thought content to process
            priority: Priority 1-10 (default 5)
        """
        try:
            thought_id = manager.send_thought(thought_type, content, priority)
        except ValueError:
            return (
                f"[FAILED] Unknown thought_type: {thought_type}. "
                "Use pattern, connection, question or general."
            )
        except ContemplationError as e:
            return f"[FAILED] {e}"
        return f"Thought sent for processing. ID: {thought_id}"

    @tool("get_insights")
    def get_insights(
        thought_type: Optional[str] = None,
        limit: int = 10,
        min_significance: Optional[int] = None,
    ) -> str:
        """
        Retrieve processed insights from contemplation. Each insight is returned once.

        Args:
            thought_type: Optional filter: "pattern", "connection", "question", "general"
            limit: Maximum insights to return (default 10)
            min_significance: Minimum significance 1-10 (default: current threshold)
        """
        try:
            insights = manager.get_insights(thought_type, limit, min_significance)
        except ValueError:
            return f"[FAILED] Unknown thought_type: {thought_type}"
        return _dumps([insight.to_dict() for insight in insights])

    @tool("set_threshold")
    def set_threshold(threshold: int) -> str:
        """
        Set the default minimum significance for get_insights.

        Args:
            threshold: Significance 1-10
        """
        value = manager.set_threshold(threshold)
        return f"Insight threshold set to {value}"

    @tool("get_memory_stats")
    def get_memory_stats() -> str:
        """Get insight memory usage statistics."""
        return _dumps(manager.get_memory_stats())

    @tool("get_status")
    def get_status() -> str:
        """Get contemplation loop status."""
        return _dumps(manager.get_status())

    @tool("stop_contemplation")
    def stop_contemplation() -> str:
        """Stop the contemplation loop."""
        return manager.stop()

    @tool("clear_scratch")
    def clear_scratch() -> str:
        """Clear temporary scratch notes."""
        try:
            count = manager.clear_scratch()
        except OSError as e:
            return f"[FAILED] {e}"
        return f"Cleared {count} scratch files"

    @tool("help")
    def help_tool() -> str:
        """Get help documentation for the contemplation system."""
        return HELP_DOCUMENTATION

    return [
        start_contemplation,
        send_thought,
        get_insights,
        set_threshold,
        get_memory_stats,
        get_status,
        stop_contemplation,
        clear_scratch,
        help_tool,
    ]
