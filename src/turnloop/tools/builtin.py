"""Built-in tool definitions."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from turnloop.cancellation import CancellationToken
from turnloop.tools.registry import ToolOutcome, ToolRegistry
from turnloop.tools.shell import ShellExecutionResult, execute_shell


class ShellInput(BaseModel):
    command: str = Field(..., description="Shell command to run")

    @field_validator("command")
    @classmethod
    def _require_command(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("No command provided to run_shell_command.")
        return value


class ReadFileInput(BaseModel):
    path: str = Field(..., description="File path")
    offset: int = Field(default=0, ge=0, description="Line offset (0-based)")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of lines to read")


class WriteFileInput(BaseModel):
    path: str = Field(..., description="File path")
    content: str = Field(..., description="File content")


class ReplaceInput(BaseModel):
    path: str = Field(..., description="File path")
    old_string: str = Field(..., min_length=1, description="Exact text to replace")
    new_string: str = Field(..., description="Replacement text")
    expected_replacements: int = Field(default=1, ge=1, description="Number of occurrences to replace")


class ReadManyFilesInput(BaseModel):
    paths: list[str] = Field(..., min_length=1, description="File paths")


def _resolve_path(workspace: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    if path.is_absolute():
        return path
    return workspace / path


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    workspace: Path,
    shell_timeout_seconds: float | None = None,
) -> None:
    """Register the shell and file tools bound to one workspace."""

    register = registry.register

    @register(name="run_shell_command", short_description="Run a shell command", model=ShellInput)
    async def run_shell_command(params: ShellInput, cancel: CancellationToken) -> ShellExecutionResult:
        """Execute bash in the workspace; the outcome is rendered by the scheduler."""
        return await execute_shell(params.command, workspace, cancel, timeout=shell_timeout_seconds)

    @register(name="read_file", short_description="Read file content", model=ReadFileInput)
    def read_file(params: ReadFileInput, cancel: CancellationToken) -> ToolOutcome:
        """Read UTF-8 text with optional offset and limit."""
        cancel.raise_if_cancelled()
        file_path = _resolve_path(workspace, params.path)
        lines = file_path.read_text(encoding="utf-8").splitlines()
        start = min(params.offset, len(lines))
        end = len(lines) if params.limit is None else min(len(lines), start + params.limit)
        return ToolOutcome("\n".join(lines[start:end]))

    @register(name="write_file", short_description="Write file content", model=WriteFileInput)
    def write_file(params: WriteFileInput, cancel: CancellationToken) -> ToolOutcome:
        """Write UTF-8 text to path, creating parent directories if needed."""
        cancel.raise_if_cancelled()
        file_path = _resolve_path(workspace, params.path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(params.content, encoding="utf-8")
        return ToolOutcome(f"Successfully wrote to file: {file_path}")

    @register(name="replace", short_description="Replace text in a file", model=ReplaceInput)
    def replace(params: ReplaceInput, cancel: CancellationToken) -> ToolOutcome:
        """Replace an exact number of occurrences of old_string."""
        cancel.raise_if_cancelled()
        file_path = _resolve_path(workspace, params.path)
        text = file_path.read_text(encoding="utf-8")
        count = text.count(params.old_string)
        if count == 0:
            raise RuntimeError(f"old_string not found in {file_path}")
        if count != params.expected_replacements:
            raise RuntimeError(
                f"expected {params.expected_replacements} occurrence(s) but found {count} in {file_path}"
            )
        file_path.write_text(text.replace(params.old_string, params.new_string), encoding="utf-8")
        return ToolOutcome(f"Successfully modified file: {file_path} ({count} replacements).")

    @register(name="read_many_files", short_description="Read several files", model=ReadManyFilesInput)
    def read_many_files(params: ReadManyFilesInput, cancel: CancellationToken) -> ToolOutcome:
        """Read each file in turn; unreadable files are reported inline."""
        parts: list[str] = []
        for raw_path in params.paths:
            cancel.raise_if_cancelled()
            file_path = _resolve_path(workspace, raw_path)
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                parts.append(f"--- {raw_path} ---\n[ERROR] {exc}")
                continue
            parts.append(f"--- {raw_path} ---\n{content}")
        return ToolOutcome(parts)
