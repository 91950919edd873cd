"""Session bootstrap and the public ``initialize``/``run`` entry points."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from republic import LLM

from turnloop.cancellation import CancellationToken
from turnloop.config import Settings, load_settings
from turnloop.errors import WorkspaceNotFoundError
from turnloop.loop import ConversationLoop, LoopResult
from turnloop.producer import Producer, RepublicProducer
from turnloop.tools import ToolRegistry, ToolScheduler, register_builtin_tools
from turnloop.types import MessageCallback, TurnInput


@dataclass
class Session:
    """Everything one conversation needs: settings, tools and a producer."""

    workspace: Path
    settings: Settings
    registry: ToolRegistry
    producer: Producer
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def new_loop(self) -> ConversationLoop:
        return ConversationLoop(
            producer=self.producer,
            scheduler=ToolScheduler(self.registry),
            session_id=self.session_id,
            max_turns=self.settings.max_turns,
        )


def build_registry(settings: Settings, workspace: Path) -> ToolRegistry:
    registry = ToolRegistry()
    register_builtin_tools(registry, workspace=workspace, shell_timeout_seconds=settings.shell_timeout_seconds)
    return registry


def build_llm(settings: Settings) -> LLM:
    return LLM(settings.model, api_key=settings.api_key, api_base=settings.api_base)


def initialize(workspace: Path | None = None, *, settings: Settings | None = None) -> Session:
    """Load settings, validate credentials, and build the producer and tools."""
    resolved = (workspace or Path.cwd()).expanduser().resolve()
    if not resolved.is_dir():
        raise WorkspaceNotFoundError(f"Workspace not found: {resolved}")

    settings = settings or load_settings(resolved)
    settings.validate_model()

    registry = build_registry(settings, resolved)
    producer = RepublicProducer(
        build_llm(settings),
        tools=registry.model_tools(),
        max_tokens=settings.max_tokens,
        system_prompt=settings.system_prompt,
        timeout_seconds=settings.model_timeout_seconds,
    )
    session = Session(workspace=resolved, settings=settings, registry=registry, producer=producer)
    logger.info("session.initialized id={} model={} workspace={}", session.session_id, settings.model, resolved)
    return session


async def run(
    session: Session,
    prompt: TurnInput,
    callback: MessageCallback,
    *,
    cancel: CancellationToken | None = None,
) -> LoopResult:
    """Drive one prompt to completion, reporting every message through ``callback``."""
    return await session.new_loop().run(prompt, callback, cancel=cancel)
