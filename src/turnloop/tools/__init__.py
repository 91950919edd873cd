"""Tool registry, scheduler and built-in tools."""

from .builtin import register_builtin_tools
from .registry import ModelTool, ToolCapability, ToolDescriptor, ToolInvocation, ToolOutcome, ToolRegistry
from .scheduler import ToolScheduler, format_shell_result, normalize_content
from .shell import ShellExecutionResult, execute_shell, is_binary

__all__ = [
    "ModelTool",
    "ShellExecutionResult",
    "ToolCapability",
    "ToolDescriptor",
    "ToolInvocation",
    "ToolOutcome",
    "ToolRegistry",
    "ToolScheduler",
    "execute_shell",
    "format_shell_result",
    "is_binary",
    "normalize_content",
    "register_builtin_tools",
]
