"""Application-level exception types for turnloop."""

from __future__ import annotations


class TurnloopError(Exception):
    """Base exception for turnloop."""


class ConfigurationError(TurnloopError):
    """Base exception for configuration and startup validation errors."""


class WorkspaceNotFoundError(ConfigurationError):
    """Raised when the configured workspace path does not exist."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class InvalidModelFormatError(ConfigurationError):
    """Raised when model format is not provider:model."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class ToolBuildError(TurnloopError):
    """Raised when tool arguments cannot be turned into an invocation."""


class OperationCancelledError(TurnloopError):
    """Raised by tools that observe a cancelled token before doing work."""


class ModelTimeoutError(TurnloopError):
    """Raised when the model does not answer within the configured timeout."""
