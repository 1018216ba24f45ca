"""Run shell commands in the foreground with a timeout, or in the background."""

from __future__ import annotations

import json
import logging
import os
import shutil
import signal
import subprocess
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from kncode.tools.traits import (
    ExecutionFailed,
    TextContent,
    Tool,
    ToolContext,
    ToolResult,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

MAX_OUTPUT_SIZE = 50_000
MAX_BACKGROUND_TASKS = 20
DEFAULT_TIMEOUT_MS = 120_000
MAX_TIMEOUT_MS = 3_600_000
STALE_TASK_SECONDS = 3600

_POSIX = os.name == "posix"

Sandbox = Callable[[str], Sequence[str]]


def _default_argv(command: str) -> list[str]:
    shell = "bash" if shutil.which("bash") else "sh"
    return [shell, "-c", command]


def _utf8_prefix(text: str, limit: int) -> str:
    """Keep every character that starts at or before byte ``limit``."""
    offset = 0
    for index, char in enumerate(text):
        if offset > limit:
            return text[:index]
        offset += len(char.encode("utf-8", "surrogatepass"))
    return text


def truncate_output(text: str) -> str:
    """Cut text longer than MAX_OUTPUT_SIZE bytes and note its full size."""
    size = len(text.encode("utf-8", "surrogatepass"))
    if size <= MAX_OUTPUT_SIZE:
        return text
    return f"{_utf8_prefix(text, MAX_OUTPUT_SIZE)}\n... (truncated, {size} total bytes)"


def _kill(process: subprocess.Popen) -> None:
    if _POSIX:
        try:
            os.killpg(process.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    try:
        process.kill()
    except OSError:
        pass


def _report(
    *,
    stdout: str = "",
    stderr: str = "",
    return_code: int = 0,
    interrupted: bool = False,
    background_task_id: Optional[str] = None,
    interpretation: str,
) -> ToolResult:
    payload = {
        "stdout": stdout,
        "stderr": stderr,
        "return_code": return_code,
        "interrupted": interrupted,
        "background_task_id": background_task_id,
        "persisted_output_path": None,
        "return_code_interpretation": interpretation,
    }
    return ToolResult(
        content=TextContent(json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
    )


@dataclass
class _BackgroundTask:
    task_id: str
    process: subprocess.Popen
    started_at: float


class BashTool(Tool):
    """Executes shell commands; ``sandbox`` turns a command into the argv to run."""

    name = "Bash"
    description = "Execute a shell command"
    prompt = "Use this to run shell commands. Commands run in a sandbox when available."
    is_concurrency_safe = True
    is_destructive = True
    max_result_size_chars = MAX_OUTPUT_SIZE

    def __init__(self, sandbox: Optional[Sandbox] = None) -> None:
        self._sandbox: Sandbox = sandbox or _default_argv
        self._tasks: list[_BackgroundTask] = []
        self._lock = threading.Lock()

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "The command to execute"},
                "timeout_ms": {
                    "type": "integer",
                    "description": "Timeout in milliseconds (default 120000)",
                },
                "description": {"type": "string", "description": "Human-readable description"},
                "run_in_background": {"type": "boolean", "description": "Run asynchronously"},
            },
            "required": ["command"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        if "command" not in input:
            raise ValidationFailed("missing field `command`")
        command = input["command"]
        if not isinstance(command, str):
            raise ValidationFailed("field `command` must be a string")
        timeout_ms = input.get("timeout_ms")
        if timeout_ms is not None and (
            isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms < 0
        ):
            raise ValidationFailed("field `timeout_ms` must be a non-negative integer")
        description = input.get("description")
        if description is not None and not isinstance(description, str):
            raise ValidationFailed("field `description` must be a string")
        background = input.get("run_in_background")
        if background is not None and not isinstance(background, bool):
            raise ValidationFailed("field `run_in_background` must be a boolean")

        timeout_ms = min(DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms, MAX_TIMEOUT_MS)
        argv = list(self._sandbox(command))
        if not argv:
            raise ExecutionFailed("Sandbox produced an empty command line")

        if background:
            return self._start_background(argv, context.cwd)
        return self._run(argv, context.cwd, timeout_ms)

    def _run(self, argv: list[str], cwd: Path, timeout_ms: int) -> ToolResult:
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as error:
            return _report(
                stderr=truncate_output(str(error)),
                return_code=1,
                interpretation="Command failed to execute.",
            )

        try:
            out, err = process.communicate(timeout=timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            _kill(process)
            process.communicate()
            return _report(
                stderr=truncate_output(f"Command timed out after {timeout_ms}ms"),
                return_code=124,
                interrupted=True,
                interpretation="Command timed out.",
            )

        signalled = process.returncode < 0
        return_code = -1 if signalled else process.returncode
        if return_code == 0:
            interpretation = "The command succeeded."
        elif signalled:
            interpretation = "The command was interrupted by a signal."
        else:
            interpretation = f"The command exited with non-zero status: {return_code}"

        return _report(
            stdout=truncate_output(out.decode("utf-8", errors="replace")),
            stderr=truncate_output(err.decode("utf-8", errors="replace")),
            return_code=return_code,
            interrupted=signalled,
            interpretation=interpretation,
        )

    def _reap_dead_tasks(self) -> None:
        now = time.monotonic()
        with self._lock:
            alive = []
            for task in self._tasks:
                if now - task.started_at > STALE_TASK_SECONDS:
                    logger.warning("Reaping stale background task: %s", task.task_id)
                    _kill(task.process)
                elif task.process.poll() is not None:
                    logger.debug("Background task already exited: %s", task.task_id)
                else:
                    alive.append(task)
            self._tasks = alive

    def _start_background(self, argv: list[str], cwd: Path) -> ToolResult:
        self._reap_dead_tasks()
        with self._lock:
            if len(self._tasks) >= MAX_BACKGROUND_TASKS:
                return ToolResult(
                    content=TextContent(
                        f"Too many background tasks (max {MAX_BACKGROUND_TASKS}). "
                        "Kill some with kill_background_tasks first."
                    )
                )
            task_id = f"bg_{uuid.uuid4()}"
            try:
                process = subprocess.Popen(
                    argv,
                    cwd=cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=_POSIX,
                )
            except OSError as error:
                raise ExecutionFailed(
                    f"Failed to spawn background process: {error}"
                ) from error
            self._tasks.append(_BackgroundTask(task_id, process, time.monotonic()))

        return _report(
            background_task_id=task_id,
            interpretation="Command started in background.",
        )

    def kill_background_tasks(self) -> int:
        """Kill every background task, wait for it, and return how many there were."""
        with self._lock:
            tasks, self._tasks = self._tasks, []
        for task in tasks:
            _kill(task.process)
            task.process.wait()
        logger.info("Killed %d background bash tasks", len(tasks))
        return len(tasks)

    def close(self) -> None:
        """Send a kill to background tasks without waiting; skipped if the list is busy."""
        if not self._lock.acquire(blocking=False):
            return
        try:
            for task in self._tasks:
                _kill(task.process)
            self._tasks = []
        finally:
            self._lock.release()

    def __enter__(self) -> "BashTool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_lock", None) is not None:
            try:
                self.close()
            except Exception:
                pass