"""Registry of named tool capabilities."""

from __future__ import annotations

import builtins
import inspect
import json
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, ValidationError
from republic import Tool

from turnloop.cancellation import CancellationToken
from turnloop.errors import ToolBuildError


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolOutcome:
    """Generic tool outcome; ``content`` is text, a sequence of parts, or None."""

    content: Any = None


class ToolInvocation(Protocol):
    async def execute(self, cancel: CancellationToken) -> Any: ...


class ToolCapability(Protocol):
    def build(self, args: Mapping[str, Any]) -> ToolInvocation: ...


ToolHandler = Callable[[Any, CancellationToken], Any]


class ModelTool:
    """Capability whose arguments are validated by a pydantic model."""

    def __init__(self, name: str, model: type[BaseModel], handler: ToolHandler) -> None:
        self.name = name
        self.model = model
        self.handler = handler

    @property
    def parameters(self) -> dict[str, Any]:
        return self.model.model_json_schema()

    def build(self, args: Mapping[str, Any]) -> ToolInvocation:
        try:
            params = self.model.model_validate(dict(args))
        except ValidationError as exc:
            raise ToolBuildError(_validation_message(exc)) from exc
        return _HandlerInvocation(self.handler, params)


class _HandlerInvocation:
    def __init__(self, handler: ToolHandler, params: BaseModel) -> None:
        self._handler = handler
        self._params = params

    async def execute(self, cancel: CancellationToken) -> Any:
        result = self._handler(self._params, cancel)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    short_description: str
    capability: ToolCapability
    parameters: dict[str, Any] = field(default_factory=dict)
    source: str = "builtin"


class ToolRegistry:
    """Name to capability lookup used by the scheduler and the producer."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(
        self,
        *,
        name: str,
        short_description: str,
        model: type[BaseModel],
        source: str = "builtin",
    ) -> Callable[[ToolHandler], ToolHandler]:
        def decorator(handler: ToolHandler) -> ToolHandler:
            tool = ModelTool(name, model, handler)
            self.add(
                ToolDescriptor(
                    name=name,
                    short_description=short_description,
                    capability=tool,
                    parameters=tool.parameters,
                    source=source,
                )
            )
            return handler

        return decorator

    def add(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            logger.warning("tool.register.replace name={}", descriptor.name)
        self._tools[descriptor.name] = ToolDescriptor(
            name=descriptor.name,
            short_description=descriptor.short_description,
            capability=_LoggedCapability(descriptor.name, descriptor.capability),
            parameters=descriptor.parameters,
            source=descriptor.source,
        )

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def descriptors(self) -> builtins.list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def compact_rows(self) -> builtins.list[str]:
        return [f"{descriptor.name}: {descriptor.short_description}" for descriptor in self.descriptors()]

    def model_tools(self) -> builtins.list[Tool]:
        """Schemas advertised to the model; execution stays with the scheduler."""
        return [
            Tool(
                name=descriptor.name,
                description=descriptor.short_description,
                parameters=descriptor.parameters,
                handler=None,
                context=False,
            )
            for descriptor in self.descriptors()
        ]


class _LoggedCapability:
    def __init__(self, name: str, capability: ToolCapability) -> None:
        self._name = name
        self._capability = capability

    def build(self, args: Mapping[str, Any]) -> ToolInvocation:
        _log_tool_call(self._name, args)
        return _LoggedInvocation(self._name, self._capability.build(args))


class _LoggedInvocation:
    def __init__(self, name: str, invocation: ToolInvocation) -> None:
        self._name = name
        self._invocation = invocation

    async def execute(self, cancel: CancellationToken) -> Any:
        start = time.monotonic()
        try:
            return await self._invocation.execute(cancel)
        except Exception:
            logger.exception("tool.call.error name={}", self._name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", self._name, duration * 1000)


def _log_tool_call(name: str, kwargs: Mapping[str, Any]) -> None:
    params: list[str] = []
    for key, value in kwargs.items():
        try:
            rendered = json.dumps(value, ensure_ascii=False)
        except TypeError:
            rendered = repr(value)
        value = _shorten_text(rendered, width=30, placeholder="...")
        if value.startswith('"') and not value.endswith('"'):
            value = value + '"'
        if value.startswith("[") and not value.endswith("]"):
            value = value + "]"
        params.append(f"{key}={value}")
    logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "args"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "invalid arguments: " + "; ".join(parts)
