"""Sandboxed executors for the built-in tools.

Executors raise `ToolError` for business failures and `execute` folds them into
a `ToolExecutionResult`.
"""

from __future__ import annotations

import json
import re
import shutil
import subprocess
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

import psutil
from loguru import logger
from pydantic import BaseModel, ValidationError

from flare_ai.core.types import ToolExecutionResult
from flare_ai.tools.catalog import (
    DeleteFileInput,
    ListDirectoryInput,
    ReadFileInput,
    RunCommandInput,
    SearchFilesInput,
    WriteClipboardInput,
    WriteFileInput,
    get_tool,
)

MAX_FILE_READ_SIZE = 5 * 1024 * 1024
MAX_SEARCH_DEPTH = 5
MAX_SEARCH_MATCHES = 100
CPU_SAMPLE_SECONDS = 0.1
_GIB = 1024**3

ModelT = TypeVar("ModelT", bound=BaseModel)


class ToolError(Exception):
    """Business failure of a tool; the message is shown to the model."""


def is_path_allowed(path: Path, allowed_directories: Sequence[str]) -> bool:
    """Check that `path` resolves inside at least one allowed directory."""
    if not allowed_directories:
        return False

    try:
        resolved = path.resolve(strict=True)
    except (OSError, RuntimeError):
        # Targets of writes may not exist yet.
        try:
            resolved = path.parent.resolve(strict=True)
        except (OSError, RuntimeError):
            return False

    for allowed in allowed_directories:
        try:
            root = Path(allowed).expanduser().resolve(strict=True)
        except (OSError, RuntimeError):
            continue
        if resolved.is_relative_to(root):
            return True
    return False


def _require_allowed(raw_path: str, allowed_directories: Sequence[str]) -> Path:
    path = Path(raw_path)
    if not is_path_allowed(path, allowed_directories):
        raise ToolError(f"Path '{raw_path}' is not in allowed directories")
    return path


def _parse(model: type[ModelT], arguments: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(arguments)
    except ValidationError as exc:
        for error in exc.errors():
            if error["type"] == "missing":
                raise ToolError(f"Missing '{error['loc'][0]}' argument") from exc
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "arguments"
        raise ToolError(f"Invalid '{location}' argument: {first['msg']}") from exc


def read_file(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    params = _parse(ReadFileInput, arguments)
    path = _require_allowed(params.path, allowed_directories)
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise ToolError(f"Failed to read file metadata: {exc!s}") from exc
    if size > MAX_FILE_READ_SIZE:
        raise ToolError(f"File is too large ({size} bytes). Maximum size is {MAX_FILE_READ_SIZE} bytes.")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise ToolError(f"Failed to read file: {exc!s}") from exc


def write_file(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    params = _parse(WriteFileInput, arguments)
    path = _require_allowed(params.path, allowed_directories)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ToolError(f"Failed to create directories: {exc!s}") from exc
    data = params.content.encode("utf-8")
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise ToolError(f"Failed to write file: {exc!s}") from exc
    logger.info("tool.write_file path={} bytes={}", params.path, len(data))
    return f"Successfully wrote {len(data)} bytes to {params.path}"


def list_directory(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    params = _parse(ListDirectoryInput, arguments)
    path = _require_allowed(params.path, allowed_directories)
    try:
        children = sorted(path.iterdir(), key=lambda child: child.name)
    except OSError as exc:
        raise ToolError(f"Failed to read directory: {exc!s}") from exc

    rows: list[str] = []
    for child in children:
        suffix = ""
        if child.is_symlink():
            suffix = "@"
        elif child.is_dir():
            suffix = "/"
        rows.append(f"{child.name}{suffix}")
    return "\n".join(rows)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a `*`/`?` glob into an anchored regex; other characters match literally."""
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{translated}$")


def _search(directory: Path, regex: re.Pattern[str], matches: list[str], depth: int) -> None:
    if depth == 0 or len(matches) >= MAX_SEARCH_MATCHES:
        return
    for child in sorted(directory.iterdir(), key=lambda item: item.name):
        if len(matches) >= MAX_SEARCH_MATCHES:
            return
        if regex.match(child.name):
            matches.append(str(child))
        if child.is_dir():
            try:
                _search(child, regex, matches, depth - 1)
            except OSError:
                continue


def search_files(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    params = _parse(SearchFilesInput, arguments)
    directory = _require_allowed(params.directory, allowed_directories)
    regex = glob_to_regex(params.pattern)

    matches: list[str] = []
    try:
        _search(directory, regex, matches, MAX_SEARCH_DEPTH)
    except OSError as exc:
        raise ToolError(f"Failed to read directory: {exc!s}") from exc
    return "\n".join(matches)


def delete_file(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    params = _parse(DeleteFileInput, arguments)
    path = _require_allowed(params.path, allowed_directories)
    if path.is_dir() and not path.is_symlink():
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise ToolError(f"Failed to delete directory: {exc!s}") from exc
    else:
        try:
            path.unlink()
        except OSError as exc:
            raise ToolError(f"Failed to delete file: {exc!s}") from exc
    logger.warning("tool.delete_file path={}", params.path)
    return f"Successfully deleted {params.path}"


def get_system_info(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    _ = (arguments, allowed_directories)
    cpu_usage = psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS)
    memory = psutil.virtual_memory()
    total = memory.total
    used = total - memory.available
    percent = (used / total * 100.0) if total else 0.0
    info = {
        "cpu_usage_percent": f"{cpu_usage:.1f}",
        "memory_used_gb": f"{used / _GIB:.2f}",
        "memory_total_gb": f"{total / _GIB:.2f}",
        "memory_usage_percent": f"{percent:.1f}",
    }
    return json.dumps(info, indent=2)


def run_command(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    _ = allowed_directories
    params = _parse(RunCommandInput, arguments)
    logger.warning("tool.run_command command={}", params.command)
    executable = shutil.which("bash") or "bash"
    try:
        completed = subprocess.run(  # noqa: S603
            [executable, "-c", params.command],
            capture_output=True,
            text=True,
            errors="replace",
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise ToolError(f"Failed to execute command: {exc!s}") from exc

    stdout = completed.stdout or ""
    stderr = completed.stderr or ""
    if completed.returncode != 0:
        raise ToolError(f"Command failed with exit code {completed.returncode}\nstdout: {stdout}\nstderr: {stderr}")
    return stdout


def _clipboard_commands(*, write: bool) -> list[list[str]]:
    if sys.platform == "darwin":
        return [["pbcopy"]] if write else [["pbpaste"]]
    if sys.platform == "win32":
        return [["clip"]] if write else [["powershell", "-NoProfile", "-Command", "Get-Clipboard"]]
    if write:
        return [["xclip", "-selection", "clipboard"], ["xsel", "--clipboard", "--input"], ["wl-copy"]]
    return [["xclip", "-selection", "clipboard", "-o"], ["xsel", "--clipboard", "--output"], ["wl-paste"]]


def _run_clipboard(*, write: bool, content: str | None = None) -> subprocess.CompletedProcess[str] | None:
    """Run the first clipboard utility that can be launched."""
    for command in _clipboard_commands(write=write):
        try:
            return subprocess.run(  # noqa: S603
                command,
                input=content,
                capture_output=True,
                text=True,
                errors="replace",
            )
        except OSError:
            logger.debug("tool.clipboard.unavailable command={}", command[0])
            continue
    return None


def read_clipboard(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    _ = (arguments, allowed_directories)
    completed = _run_clipboard(write=False)
    if completed is None:
        raise ToolError("Failed to read clipboard: no clipboard utility available")
    if completed.returncode != 0:
        raise ToolError("Failed to read clipboard")
    return completed.stdout


def write_clipboard(arguments: dict[str, Any], allowed_directories: Sequence[str]) -> str:
    _ = allowed_directories
    params = _parse(WriteClipboardInput, arguments)
    completed = _run_clipboard(write=True, content=params.content)
    if completed is None or completed.returncode != 0:
        raise ToolError("Failed to write to clipboard")
    logger.info("tool.write_clipboard bytes={}", len(params.content.encode("utf-8")))
    return f"Successfully copied {len(params.content.encode('utf-8'))} bytes to clipboard"


Executor = Callable[[dict[str, Any], Sequence[str]], str]

EXECUTORS: dict[str, Executor] = {
    "read_file": read_file,
    "write_file": write_file,
    "list_directory": list_directory,
    "search_files": search_files,
    "delete_file": delete_file,
    "get_system_info": get_system_info,
    "run_command": run_command,
    "read_clipboard": read_clipboard,
    "write_clipboard": write_clipboard,
}


def execute(tool_name: str, arguments: Any, allowed_directories: Sequence[str]) -> ToolExecutionResult:
    """Run one built-in tool and fold every business failure into the result."""
    tool = get_tool(tool_name)
    executor = EXECUTORS.get(tool_name)
    if tool is None or executor is None:
        logger.warning("tool.execute.unknown name={}", tool_name)
        return ToolExecutionResult.failure(f"Unknown tool: {tool_name}")

    payload = arguments if isinstance(arguments, dict) else {}
    try:
        output = executor(payload, allowed_directories)
    except ToolError as exc:
        logger.warning("tool.execute.failed name={} error={}", tool_name, exc)
        return ToolExecutionResult.failure(str(exc))

    logger.info("tool.execute.ok name={} safety={}", tool_name, tool.safety)
    return ToolExecutionResult.ok(output)
