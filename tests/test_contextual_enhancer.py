"""Tests for ContextualEnhancer and CommonEnhancements."""

from datetime import datetime, timezone

import pytest

from threadmem.processors import CommonEnhancements, ContextualEnhancer, EnhancementContext

FIXED_NOW = datetime(2025, 1, 2, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def test_marks_matching_messages_only(make_message):
    enhancer = ContextualEnhancer(clock=fixed_clock)
    user, assistant = enhancer.process(
        [make_message("hi", index=0), make_message("hello", role="assistant", index=1)]
    )
    assert user.metadata == {}
    assert assistant.metadata == {"enhanced": True, "enhanced_at": FIXED_NOW.isoformat()}
    assert assistant.content == "hello"


def test_sources_become_references_and_annotations(make_message):
    def weather(message):
        return {"weather": "sunny"}

    enhancer = ContextualEnhancer(
        context_sources=[weather], add_metadata=False, add_annotations=True
    )
    [result] = enhancer.process([make_message("Nice day", role="assistant")])
    assert result.metadata == {"references": {"weather": "sunny"}}
    assert result.content == "Nice day\n\nContext Sources: weather"


def test_source_results_are_cached(make_message):
    calls = []

    def lookup(message):
        calls.append(message.id)
        return {"lookup": message.id}

    enhancer = ContextualEnhancer(context_sources=[lookup])
    message = make_message("x", role="assistant")
    enhancer.process([message])
    enhancer.process([message])
    assert calls == ["msg-0"]

    enhancer.clear_cache()
    enhancer.process([message])
    assert calls == ["msg-0", "msg-0"]


def test_failing_source_is_skipped(make_message):
    def broken(message):
        raise RuntimeError("down")

    def ok(message):
        return {"ok": True}

    enhancer = ContextualEnhancer(context_sources=[broken, ok], add_metadata=False)
    [result] = enhancer.process([make_message("x", role="assistant")])
    assert result.metadata == {"references": {"ok": True}}


def test_failing_enhancement_keeps_original(make_message):
    def broken(message, context):
        raise RuntimeError("boom")

    enhancer = ContextualEnhancer(enhancements=[broken])
    message = make_message("x", role="assistant")
    assert enhancer.process([message]) == [message]


def test_context_window(make_message):
    seen: list[EnhancementContext] = []

    def record(message, context):
        seen.append(context)
        return message

    messages = [make_message(f"m{i}", role="assistant", index=i) for i in range(6)]
    enhancer = ContextualEnhancer(enhancements=[record], context_window=1)
    enhancer.process(messages)

    assert [m.id for m in seen[0].messages] == ["msg-0", "msg-1"]
    assert [m.id for m in seen[3].messages] == ["msg-2", "msg-3", "msg-4"]
    assert seen[3].current_index == 1
    assert [m.id for m in seen[3].neighbours] == ["msg-2", "msg-4"]
    assert seen[3].thread_id == "thread-1"


def test_negative_window_rejected():
    with pytest.raises(ValueError):
        ContextualEnhancer(context_window=-1)


def test_related_messages(make_message):
    enhancer = ContextualEnhancer(
        enhancements=[CommonEnhancements.related_messages(threshold=0.5)],
        roles=["user", "assistant"],
        add_metadata=False,
    )
    first, second, third = enhancer.process(
        [
            make_message("the cat sat on the mat", index=0),
            make_message("the cat sat on a mat", role="assistant", index=1),
            make_message("stock prices fell sharply", index=2),
        ]
    )
    assert [r["id"] for r in first.metadata["related_messages"]] == ["msg-1"]
    assert [r["id"] for r in second.metadata["related_messages"]] == ["msg-0"]
    assert "related_messages" not in third.metadata


def test_entity_cross_references(make_message):
    paris = {"type": "location", "value": "Paris"}
    enhancer = ContextualEnhancer(
        enhancements=[CommonEnhancements.entity_cross_references()],
        roles=["user", "assistant"],
        add_metadata=False,
    )
    first, second = enhancer.process(
        [
            make_message("Going to Paris", index=0, metadata={"entities": [paris]}),
            make_message("Paris is lovely", role="assistant", index=1, metadata={"entities": [paris]}),
        ]
    )
    assert first.metadata["entity_references"] == {"Paris": [{**paris, "message_id": "msg-1"}]}
    assert second.metadata["entity_references"] == {"Paris": [{**paris, "message_id": "msg-0"}]}


def test_knowledge_base_references(make_message):
    def kb(message):
        return {"knowledge_base": ["doc-1"]}

    enhancer = ContextualEnhancer(
        enhancements=[CommonEnhancements.knowledge_base_references()],
        context_sources=[kb],
        add_references=False,
        add_metadata=False,
    )
    [result] = enhancer.process([make_message("x", role="assistant")])
    assert result.metadata == {"knowledge_references": ["doc-1"]}
