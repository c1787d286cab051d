"""
Tests for the LangChain tool wrappers around the contemplation manager.
"""

import io
import json
from unittest.mock import MagicMock, patch

import pytest

from contemplation.manager import ContemplationManager
from contemplation.memory import ContemplationConfig
from contemplation.tools import HELP_DOCUMENTATION, create_contemplation_tools


def _insight_line(thought_id, content, significance, thought_type="pattern"):
    return json.dumps({
        "has_insight": True,
        "thought_id": thought_id,
        "thought_type": thought_type,
        "insight": content,
        "significance": significance,
    })


@pytest.fixture
def manager(tmp_path):
    return ContemplationManager(
        config=ContemplationConfig(
            loop_script=tmp_path / "contemplation_loop.py",
            scratch_dir=tmp_path / "scratch",
            startup_delay=0,
        )
    )


@pytest.fixture
def tools(manager):
    return {t.name: t for t in create_contemplation_tools(manager)}


class TestContemplationTools:
    def test_tool_names(self, tools):
        assert set(tools) == {
            "start_contemplation",
            "send_thought",
            "get_insights",
            "set_threshold",
            "get_memory_stats",
            "get_status",
            "stop_contemplation",
            "clear_scratch",
            "help",
        }

    def test_help(self, tools):
        assert tools["help"].invoke({}) == HELP_DOCUMENTATION
        assert "send_thought" in HELP_DOCUMENTATION

    def test_send_thought_not_running(self, tools):
        result = tools["send_thought"].invoke(
            {"thought_type": "pattern", "content": "hello"}
        )
        assert result.startswith("[FAILED]")
        assert "not running" in result

    def test_send_thought_unknown_type(self, tools):
        result = tools["send_thought"].invoke(
            {"thought_type": "dream", "content": "hello"}
        )
        assert result.startswith("[FAILED] Unknown thought_type: dream")

    def test_start_send_stop(self, tools):
        process = MagicMock()
        process.pid = 99
        process.poll.return_value = None
        process.stdout = io.StringIO("")
        process.stderr = io.StringIO("")
        with patch("contemplation.manager.subprocess.Popen", return_value=process):
            assert tools["start_contemplation"].invoke({}) == (
                "Contemplation loop started successfully"
            )

        result = tools["send_thought"].invoke(
            {"thought_type": "question", "content": "why?", "priority": 9}
        )
        assert result.startswith("Thought sent for processing. ID: thought_")

        status = json.loads(tools["get_status"].invoke({}))
        assert status["running"] is True
        assert status["pid"] == 99

        assert tools["stop_contemplation"].invoke({}) == "Contemplation loop stopped"
        assert tools["stop_contemplation"].invoke({}) == "Contemplation loop not running"

    def test_start_failure_is_reported(self, tools):
        with patch(
            "contemplation.manager.subprocess.Popen",
            side_effect=PermissionError("denied"),
        ):
            result = tools["start_contemplation"].invoke({})
        assert result.startswith("[FAILED] Failed to start contemplation")

    def test_get_insights_returns_json(self, manager, tools):
        manager.bridge.on_line(_insight_line("a", "user likes dark mode UI", 4))
        manager.bridge.on_line(_insight_line("b", "user prefers dark UI mode", 6))
        manager.bridge.on_line(_insight_line("c", "weather is sunny today", 9, "general"))

        insights = json.loads(tools["get_insights"].invoke({"min_significance": 1}))
        assert [i["id"] for i in insights] == ["c", "a"]
        assert insights[1]["similar_count"] == 2
        assert insights[1]["member_ids"] == ["a", "b"]
        assert all(i["used"] for i in insights)
        assert json.loads(tools["get_insights"].invoke({"min_significance": 1})) == []

    def test_get_insights_unknown_type(self, tools):
        result = tools["get_insights"].invoke({"thought_type": "dream"})
        assert result.startswith("[FAILED]")

    def test_set_threshold_and_stats(self, manager, tools):
        assert tools["set_threshold"].invoke({"threshold": 15}) == "Insight threshold set to 10"
        manager.bridge.on_line(_insight_line("a", "alpha one", 9))
        stats = json.loads(tools["get_memory_stats"].invoke({}))
        assert stats["threshold"] == 10
        assert stats["total"] == 1
        assert stats["high_significance"] == 1

    def test_get_status_not_running(self, tools):
        assert json.loads(tools["get_status"].invoke({})) == {
            "running": False,
            "queue_size": 0,
        }

    def test_clear_scratch(self, manager, tools):
        day = manager.config.scratch_dir / "2025-03-01"
        day.mkdir(parents=True)
        (day / "note.md").write_text("scratch")
        assert tools["clear_scratch"].invoke({}) == "Cleared 1 scratch files"
        assert tools["clear_scratch"].invoke({}) == "Cleared 0 scratch files"
