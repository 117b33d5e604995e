"""Tests for EntityExtractor and SentimentAnalyzer."""

import pytest

from threadmem.processors import EntityExtractor, SentimentAnalyzer


def entity_pairs(message):
    return [(e["type"], e["value"]) for e in message.metadata["entities"]]


class TestEntityExtractor:
    def test_people_organizations_locations(self, make_message):
        message = make_message("John Smith works at Acme Corp in Boston")
        [result] = EntityExtractor().process([message])
        assert entity_pairs(result) == [
            ("person", "John Smith"),
            ("organization", "Acme Corp"),
            ("location", "Boston"),
        ]
        assert result.content == message.content

    def test_contact_details(self, make_message):
        message = make_message("Contact jane.doe@example.com or visit https://example.com/docs today")
        [result] = EntityExtractor().process([message])
        pairs = entity_pairs(result)
        assert ("email", "jane.doe@example.com") in pairs
        assert ("url", "https://example.com/docs") in pairs

    def test_custom_entities(self, make_message):
        message = make_message("I bought a widget pro yesterday")
        [result] = EntityExtractor(custom_entities={"product": ["Widget Pro"]}).process([message])
        assert entity_pairs(result) == [("product", "widget pro")]

    def test_relationships(self, make_message):
        message = make_message("John Smith works at Acme Corp in Boston")
        [result] = EntityExtractor(detect_relationships=True).process([message])
        person = result.metadata["entities"][0]
        assert {"type": "employedBy", "target": "organization:acme corp"} in person["relationships"]
        assert {"type": "locatedIn", "target": "location:boston"} in person["relationships"]

    def test_annotate_content(self, make_message):
        message = make_message("Email bob@example.org please")
        [result] = EntityExtractor(annotate_content=True).process([message])
        assert result.content.endswith("\n\nEntities:\n- email: bob@example.org")

    def test_never_drops_or_reorders(self, make_message):
        messages = [
            make_message("nothing here", index=0),
            make_message({"structured": True}, role="tool", type="tool-result", index=1),
            make_message("Mail ann@example.com", index=2),
        ]
        result = EntityExtractor().process(messages)
        assert [m.id for m in result] == ["msg-0", "msg-1", "msg-2"]
        assert result[0] is messages[0]
        assert result[1] is messages[1]
        assert "entities" in result[2].metadata


class TestSentimentAnalyzer:
    @pytest.mark.parametrize(
        "text,label",
        [
            ("This is a great and helpful answer", "positive"),
            ("That was a terrible mistake", "negative"),
            ("The meeting is on Tuesday", "neutral"),
        ],
    )
    def test_labels(self, text, label):
        assert SentimentAnalyzer().analyze(text).label == label

    def test_negation_flips(self):
        score = SentimentAnalyzer().analyze("This is not good")
        assert score.label == "negative"
        assert score.score == -1.0

    def test_intensifier_weights(self):
        score = SentimentAnalyzer().analyze("very good bad")
        assert score.score == pytest.approx(1 / 3)
        assert score.label == "positive"

    def test_roles_filter(self, make_message):
        system = make_message("You are a great assistant", role="system", index=0)
        user = make_message("I love this", index=1)
        result = SentimentAnalyzer().process([system, user])
        assert result[0] is system
        assert result[1].metadata["sentiment"]["label"] == "positive"

    def test_annotate_content(self, make_message):
        [result] = SentimentAnalyzer(annotate_content=True).process([make_message("I love this")])
        assert result.content == "I love this\n\nSentiment: positive (100%)"
