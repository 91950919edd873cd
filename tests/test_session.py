from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from conftest import ScriptedProducer

from turnloop.config import Settings
from turnloop.errors import ModelNotConfiguredError, WorkspaceNotFoundError
from turnloop.producer import RepublicProducer
from turnloop.session import Session, build_registry, initialize, run
from turnloop.types import FunctionResponse, StreamEvent, ToolCallRequest


class _RecordingLLM:
    def __init__(self, model: str, **kwargs: Any) -> None:
        self.model = model
        self.kwargs = kwargs


def test_initialize_builds_registry_and_producer(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("turnloop.session.LLM", _RecordingLLM)
    settings = Settings(model="openai:gpt-4o-mini", api_key="sk-test", max_turns=3)

    session = initialize(tmp_path, settings=settings)

    assert session.workspace == tmp_path.resolve()
    assert session.registry.has("run_shell_command")
    assert isinstance(session.producer, RepublicProducer)
    assert session.producer._llm.model == "openai:gpt-4o-mini"
    assert session.producer._llm.kwargs == {"api_key": "sk-test", "api_base": None}
    assert session.new_loop()._max_turns == 3


def test_initialize_rejects_missing_workspace(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceNotFoundError):
        initialize(tmp_path / "missing", settings=Settings(model="openai:x", api_key="k"))


def test_initialize_requires_model(tmp_path: Path) -> None:
    with pytest.raises(ModelNotConfiguredError):
        initialize(tmp_path, settings=Settings(model=None))


@pytest.mark.asyncio
async def test_run_executes_builtin_tool_end_to_end(tmp_path: Path, messages) -> None:
    (tmp_path / "greeting.txt").write_text("hello from disk", encoding="utf-8")
    settings = Settings(model="openai:x", api_key="k")
    producer = ScriptedProducer(
        turns=[
            [
                StreamEvent("tool_call_request", ToolCallRequest("c1", "read_file", {"path": "greeting.txt"})),
                StreamEvent("finished", "tool_calls"),
            ],
            [StreamEvent("content", "It says hello."), StreamEvent("finished", "stop")],
        ]
    )
    session = Session(
        workspace=tmp_path,
        settings=settings,
        registry=build_registry(settings, tmp_path),
        producer=producer,
        session_id="abc",
    )

    result = await run(session, "What does greeting.txt say?", messages.append)

    assert result.status == "completed"
    assert [message.type for message in messages] == [
        "tool_call_request",
        "finished",
        "tool_result",
        "content",
        "finished",
    ]
    assert producer.inputs[1] == [FunctionResponse(call_id="c1", name="read_file", content="hello from disk")]


class _ToolCallingChat:
    def __init__(self) -> None:
        self.calls: list[list[dict[str, Any]]] = []

    def raw(self, **kwargs: Any) -> Any:
        self.calls.append(list(kwargs["messages"]))
        call = SimpleNamespace(
            id=f"call-{len(self.calls)}",
            type="function",
            function=SimpleNamespace(name="read_file", arguments='{"path": "missing.txt"}'),
        )
        message = SimpleNamespace(content=None, tool_calls=[call], reasoning_content=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason="tool_calls")])


@pytest.mark.asyncio
async def test_run_after_turn_ceiling_keeps_history_well_formed(tmp_path: Path, messages) -> None:
    chat = _ToolCallingChat()
    settings = Settings(model="openai:x", api_key="k", max_turns=1)
    registry = build_registry(settings, tmp_path)
    producer = RepublicProducer(SimpleNamespace(chat=chat), tools=[], max_tokens=64)  # type: ignore[arg-type]
    session = Session(workspace=tmp_path, settings=settings, registry=registry, producer=producer)

    first = await run(session, "first", messages.append)
    second = await run(session, "second", messages.append)

    assert first.status == "max_turns"
    assert second.status == "max_turns"
    roles = [message["role"] for message in chat.calls[1]]
    assert roles == ["user", "assistant", "tool", "user"]
    assert chat.calls[1][2]["tool_call_id"] == "call-1"
