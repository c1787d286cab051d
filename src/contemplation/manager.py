"""
Contemplation manager

Owns the background contemplation loop subprocess and the insight store:
- start / stop: the subprocess handle lives only between these two calls
- send_thought: fire-and-forget add_thought command, acknowledged with a local id
- get_insights: prune → aggregate → rank → consume over the insight store
- get_status / get_memory_stats: answered from local state

Threading model:
- Reader threads only push raw stdout lines onto a queue
- Every public call drains that queue on the caller's thread first, so the
  store is only ever mutated from one thread and needs no lock
"""

import logging
import queue
import shutil
import subprocess
import threading
import time
import uuid
from pathlib import Path
from typing import Optional, TextIO

from dotenv import load_dotenv

from .bridge import BridgeProtocolAdapter
from .errors import ContemplationError, ContemplationNotRunningError, ContemplationStartError
from .memory import ContemplationConfig, InsightKind, InsightMemoryConfig, InsightRecord, InsightStore
from .memory.records import MAX_SIGNIFICANCE, MIN_SIGNIFICANCE

logger = logging.getLogger(__name__)


def _new_thought_id() -> str:
    return f"thought_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _pump_stdout(stream: TextIO, lines: queue.Queue):
    """Reader thread: forward stdout lines to the manager's queue."""
    try:
        for line in stream:
            if line.strip():
                lines.put(line)
    except (OSError, ValueError):
        # Stream closed underneath us during stop()
        pass


def _log_stderr(stream: TextIO):
    """Reader thread: surface the loop's stderr through logging."""
    try:
        for line in stream:
            line = line.rstrip()
            if line:
                logger.debug("contemplation loop: %s", line)
    except (OSError, ValueError):
        pass


def _close_streams(process: subprocess.Popen, readers: list[threading.Thread]):
    """Close the child's pipes and wait briefly for the reader threads."""
    for stream in (process.stdin, process.stdout, process.stderr):
        if stream is None:
            continue
        try:
            stream.close()
        except OSError:
            pass
    for reader in readers:
        reader.join(timeout=1.0)


class ContemplationManager:
    """
    Bridge between tool callers and the contemplation loop subprocess.

    使用示例：
        manager = ContemplationManager()
        manager.start()
        thought_id = manager.send_thought("pattern", "User keeps asking about dark mode")
        ...
        for insight in manager.get_insights(limit=5):
            print(insight.content)
        manager.stop()
    """

    def __init__(
        self,
        config: Optional[ContemplationConfig] = None,
        memory_config: Optional[InsightMemoryConfig] = None,
        store: Optional[InsightStore] = None,
    ):
        self.config = config or ContemplationConfig()
        if store is not None:
            self.memory_config = store.config
            self.store = store
        else:
            self.memory_config = memory_config or InsightMemoryConfig()
            self.store = InsightStore(self.memory_config)

        self.bridge = BridgeProtocolAdapter(self.store)
        self.threshold = self.memory_config.default_threshold

        # 子进程句柄只在 start() 与 stop() 之间存在
        self._process: Optional[subprocess.Popen] = None
        self._lines: queue.Queue = queue.Queue()
        self._readers: list[threading.Thread] = []
        self._started_at: Optional[float] = None

    def __enter__(self) -> "ContemplationManager":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    def drain(self) -> int:
        """
        Deliver queued subprocess lines to the bridge adapter.

        Returns the number of insights stored.
        """
        stored = 0
        while True:
            try:
                line = self._lines.get_nowait()
            except queue.Empty:
                break
            if self.bridge.on_line(line):
                stored += 1
        return stored

    def start(self) -> str:
        """Spawn the contemplation loop and wait out the startup grace period."""
        if self.is_running:
            return "Contemplation loop already running"
        if self._process is not None:
            # Exited on its own since the last call; release the old handle
            self._release()

        script = Path(self.config.loop_script)
        try:
            process = subprocess.Popen(
                [self.config.python_executable, str(script)],
                cwd=str(script.parent),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise ContemplationStartError(f"Failed to start contemplation: {e}") from e

        lines: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(
                target=_pump_stdout,
                args=(process.stdout, lines),
                name="contemplation-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=_log_stderr,
                args=(process.stderr,),
                name="contemplation-stderr",
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        # 给子进程一点启动时间（固定等待，不做握手）
        time.sleep(self.config.startup_delay)

        if process.poll() is not None:
            _close_streams(process, readers)
            raise ContemplationStartError(
                f"Failed to start contemplation: loop exited with code {process.returncode}"
            )

        self._process = process
        self._lines = lines
        self._readers = readers
        self._started_at = time.monotonic()
        self.bridge.attach(process.stdin)

        logger.info("Contemplation loop started (pid %s, script %s)", process.pid, script)
        return "Contemplation loop started successfully"

    def send_thought(self, thought_type: str, content: str, priority: int = 5) -> str:
        """Queue a thought for background processing and return its id."""
        kind = InsightKind(thought_type)
        self.drain()
        if not self.is_running:
            raise ContemplationNotRunningError()

        thought_id = _new_thought_id()
        try:
            self.bridge.send_command(
                "add_thought",
                thought_type=kind.value,
                content=content,
                priority=priority,
                thought_id=thought_id,
            )
        except OSError as e:
            raise ContemplationError(f"Failed to send thought: {e}") from e

        logger.debug("Sent thought %s (%s, priority %s)", thought_id, kind.value, priority)
        return thought_id

    def get_insights(
        self,
        thought_type: Optional[str] = None,
        limit: Optional[int] = None,
        min_significance: Optional[int] = None,
    ) -> list[InsightRecord]:
        """
        Retrieve processed insights; each insight is returned at most once.

        min_significance defaults to the current threshold (see set_threshold).
        """
        self.drain()
        return self.store.retrieve(
            kind=thought_type,
            limit=limit,
            min_significance=self.threshold if min_significance is None else min_significance,
        )

    def set_threshold(self, threshold: int) -> int:
        """Set the default minimum significance for retrieval (clamped to 1-10)."""
        self.threshold = max(MIN_SIGNIFICANCE, min(MAX_SIGNIFICANCE, int(threshold)))
        logger.info("Insight significance threshold set to %d", self.threshold)
        return self.threshold

    def get_memory_stats(self) -> dict:
        self.drain()
        return self.store.stats(self.threshold)

    def get_status(self) -> dict:
        """
        Report loop status from local state.

        A status command is still sent to the loop, but no reply is awaited.
        """
        self.drain()
        if not self.is_running:
            return {"running": False, "queue_size": 0}

        try:
            self.bridge.send_command("status")
        except OSError as e:
            logger.warning("Failed to send status request: %s", e)

        return {
            "running": True,
            "pid": self._process.pid,
            "queue_size": self.store.unused_count(),
            "last_content": self.store.last_content(),
            "uptime": round(time.monotonic() - self._started_at, 1),
        }

    def stop(self) -> str:
        """Send stop, then terminate. Lines not yet delivered are discarded."""
        if self._process is None:
            return "Contemplation loop not running"

        try:
            self.bridge.send_command("stop")
        except (OSError, ValueError) as e:
            logger.debug("Could not send stop command: %s", e)

        process = self._process
        process.terminate()
        try:
            process.wait(timeout=self.config.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Contemplation loop (pid %s) ignored terminate, killing", process.pid
            )
            process.kill()
            process.wait()

        self._release()
        logger.info("Contemplation loop stopped (pid %s)", process.pid)
        return "Contemplation loop stopped"

    def _release(self):
        process = self._process
        self._process = None
        self._started_at = None
        self.bridge.detach()

        _close_streams(process, self._readers)
        self._readers = []

        # at-most-once: anything still queued is lost
        self._lines = queue.Queue()

    def clear_scratch(self) -> int:
        """
        Remove every day directory under the scratch dir.

        Returns the number of files removed. A missing scratch dir counts as
        zero; loose files at the top level are left alone.
        """
        scratch_dir = Path(self.config.scratch_dir)
        if not scratch_dir.is_dir():
            return 0

        count = 0
        for day_dir in sorted(scratch_dir.iterdir()):
            if not day_dir.is_dir():
                continue
            files = sum(1 for p in day_dir.rglob("*") if p.is_file())
            shutil.rmtree(day_dir)
            count += files

        logger.info("Cleared %d scratch files from %s", count, scratch_dir)
        return count


def create_contemplation_manager(
    config: Optional[ContemplationConfig] = None,
    memory_config: Optional[InsightMemoryConfig] = None,
) -> ContemplationManager:
    """
    Build a manager from environment variables (.env supported).

    Explicit configs take precedence over the environment.
    """
    # 加载环境变量（override=True 确保 .env 文件覆盖系统环境变量）
    load_dotenv(override=True)
    return ContemplationManager(
        config=config or ContemplationConfig.from_env(),
        memory_config=memory_config or InsightMemoryConfig.from_env(),
    )
