"""Tests for StreamObjectProcessor and CommonStreamTransforms."""

import json

from threadmem.processors import CommonStreamTransforms, StreamObjectProcessor


def test_text_field_becomes_content(make_message):
    processor = StreamObjectProcessor()
    [result] = processor.process([make_message({"text": "Hello", "score": 3}, role="assistant")])
    assert result.content == "Hello"
    [annotation] = result.metadata["stream_object_annotations"]
    assert annotation["original_content"] == {"text": "Hello", "score": 3}
    assert annotation["transformed_content"] == {"text": "Hello", "score": 3}


def test_without_text_field_serializes_object(make_message):
    processor = StreamObjectProcessor()
    [result] = processor.process([make_message({"score": 3})])
    assert json.loads(result.content) == {"score": 3}
    assert "stream_object_annotations" not in result.metadata


def test_preserve_original_off(make_message):
    processor = StreamObjectProcessor(preserve_original_content=False)
    [result] = processor.process([make_message({"text": "Hi"})])
    assert result.content == "Hi"
    assert result.metadata == {}


def test_extract_disabled_keeps_object_as_json(make_message):
    processor = StreamObjectProcessor(extract_text_content=False)
    [result] = processor.process([make_message({"text": "Hi"})])
    assert json.loads(result.content) == {"text": "Hi"}


def test_string_and_list_content_untouched(make_message):
    messages = [make_message("plain", index=0), make_message([{"type": "text"}], index=1)]
    assert StreamObjectProcessor().process(messages) == messages


def test_role_filter(make_message):
    processor = StreamObjectProcessor(roles=["assistant"])
    user, assistant = processor.process(
        [make_message({"text": "a"}, index=0), make_message({"text": "b"}, role="assistant", index=1)]
    )
    assert user.content == {"text": "a"}
    assert assistant.content == "b"


def test_transforms_run_in_order(make_message):
    processor = StreamObjectProcessor(
        [
            CommonStreamTransforms.extract_fields(["title", "body"]),
            CommonStreamTransforms.merge_fields(["title", "body"], separator=": "),
        ]
    )
    [result] = processor.process([make_message({"title": "News", "body": "Rain", "noise": 1})])
    assert result.content == "News: Rain"
    transformed = result.metadata["stream_object_annotations"][0]["transformed_content"]
    assert "noise" not in transformed


def test_failing_transform_keeps_message(make_message):
    def broken(content):
        raise RuntimeError("boom")

    processor = StreamObjectProcessor()
    processor.add_transform(broken)
    message = make_message({"text": "Hi"})
    assert processor.process([message]) == [message]


def test_merge_fields_encodes_non_strings():
    merge = CommonStreamTransforms.merge_fields(["a", "b", "missing"])
    assert merge({"a": "x", "b": {"k": 1}}) == {"a": "x", "b": {"k": 1}, "text": 'x\n{"k": 1}'}
    assert merge({"other": 1}) == {"other": 1}


def test_format_json_fields():
    fmt = CommonStreamTransforms.format_json_fields(["raw", "obj", "bad"])
    result = fmt({"raw": '{"a": 1}', "obj": {"b": 2}, "bad": "{not json"})
    assert result["raw"] == {"a": 1}
    assert result["obj"] == json.dumps({"b": 2}, indent=2)
    assert result["bad"] == "{not json"
