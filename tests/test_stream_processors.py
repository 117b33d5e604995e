"""Tests for MessageTransformer, StreamFilter and StreamAggregator."""

from threadmem.core.types import MessageType
from threadmem.processors import (
    CommonFilters,
    CommonGroupings,
    CommonTransforms,
    MessageTransformer,
    StreamAggregator,
    StreamFilter,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestMessageTransformer:
    def test_transforms_apply_in_order(self, make_message):
        transformer = MessageTransformer(
            [
                CommonTransforms.normalize_whitespace(),
                CommonTransforms.truncate_content(10, suffix="..."),
            ]
        )
        [result] = transformer.process([make_message("  lots   of   spaces here  ")])
        assert result.content == "lots of sp..."

    def test_role_filter(self, make_message):
        transformer = MessageTransformer([CommonTransforms.add_metadata(seen=True)], roles=["user"])
        user, assistant = transformer.process(
            [make_message("hi", index=0), make_message("hello", role="assistant", index=1)]
        )
        assert user.metadata["seen"] is True
        assert "seen" not in assistant.metadata

    def test_redaction(self, make_message):
        transformer = MessageTransformer([CommonTransforms.remove_sensitive_info()])
        [result] = transformer.process([make_message("mail me at a@b.com, api_key=abc123")])
        assert "a@b.com" not in result.content
        assert "abc123" not in result.content
        assert "[REDACTED]" in result.content

    def test_enhance_urls(self, make_message):
        transformer = MessageTransformer([CommonTransforms.enhance_urls()])
        [result] = transformer.process([make_message("see https://docs.python.org/3/ now")])
        assert result.content == "see https://docs.python.org/3/ [docs.python.org] now"

    def test_structured_content_untouched(self, make_message):
        message = make_message({"k": "v"}, role="tool", type="tool-result")
        transformer = MessageTransformer([CommonTransforms.truncate_content(1)])
        assert transformer.process([message])[0].content == {"k": "v"}


class TestStreamFilter:
    def test_exclude_mode(self, make_message):
        messages = [
            make_message("keep", index=0),
            make_message({"x": 1}, role="tool", type="tool-result", index=1),
        ]
        stream_filter = StreamFilter(exclude=[CommonFilters.by_role("tool")])
        assert [m.id for m in stream_filter.process(messages)] == ["msg-0"]

    def test_include_mode(self, make_message):
        messages = [
            make_message("deploy the service", index=0),
            make_message("lunch plans", index=1),
            make_message("deploy failed", index=2, metadata={"draft": True}),
        ]
        stream_filter = StreamFilter(
            include=[CommonFilters.by_content("deploy")],
            exclude=[CommonFilters.by_metadata("draft", True)],
            mode="include",
        )
        assert [m.id for m in stream_filter.process(messages)] == ["msg-0"]

    def test_by_type(self, make_message):
        messages = [
            make_message("text", index=0),
            make_message("call", role="assistant", type="tool-call", index=1),
        ]
        stream_filter = StreamFilter(include=[CommonFilters.by_type("tool-call")], mode="include")
        assert [m.id for m in stream_filter.process(messages)] == ["msg-1"]


class TestStreamAggregator:
    def test_emits_at_max(self, make_message):
        aggregator = StreamAggregator(max_messages=3, clock=FakeClock())
        messages = [make_message(f"part {i}", index=i) for i in range(3)]
        [result] = aggregator.process(messages)

        assert result.id == "aggregated-msg-0"
        assert result.content == "part 0\n\npart 1\n\npart 2"
        assert result.metadata["aggregated_count"] == 3
        assert result.metadata["aggregated_ids"] == ["msg-0", "msg-1", "msg-2"]
        assert aggregator.buffered == 0

    def test_time_window(self, make_message):
        clock = FakeClock()
        aggregator = StreamAggregator(time_window=60, clock=clock)
        assert aggregator.process([make_message("a", index=0), make_message("b", index=1)]) == []
        assert aggregator.buffered == 2

        clock.now = 61
        [result] = aggregator.process([])
        assert result.content == "a\n\nb"

    def test_flush_below_minimum(self, make_message):
        aggregator = StreamAggregator(min_messages=2, clock=FakeClock())
        message = make_message("alone")
        assert aggregator.process([message]) == []
        assert aggregator.flush() == [message]

    def test_ineligible_pass_through(self, make_message):
        aggregator = StreamAggregator(clock=FakeClock())
        system = make_message("rules", role="system")
        assert aggregator.process([system]) == [system]

    def test_tool_results(self, make_message):
        aggregator = StreamAggregator(max_messages=2, clock=FakeClock())
        messages = [
            make_message({"temp": 20}, role="tool", type="tool-result", index=0),
            make_message({"temp": 22}, role="tool", type="tool-result", index=1),
        ]
        [result] = aggregator.process(messages)
        assert result.type == MessageType.TOOL_RESULT
        [part] = result.content
        assert part["toolName"] == "aggregatedToolResult"
        assert part["result"] == [{"temp": 20}, {"temp": 22}]

    def test_group_by_name(self, make_message):
        aggregator = StreamAggregator(group_by=CommonGroupings.by_name(), clock=FakeClock())
        messages = [
            make_message("x1", role="assistant", name="alpha", index=0),
            make_message("y1", role="assistant", name="beta", index=1),
            make_message("x2", role="assistant", name="alpha", index=2),
        ]
        assert aggregator.process(messages) == []

        flushed = aggregator.flush()
        assert [m.content for m in flushed] == ["y1", "x1\n\nx2"]
