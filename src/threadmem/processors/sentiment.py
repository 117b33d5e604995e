"""Lexicon-based sentiment scoring."""

import re
from dataclasses import asdict, dataclass

from threadmem.core.types import Message, MessageRole
from threadmem.processors.base import MemoryProcessor

POSITIVE_WORDS = frozenset(
    """
    good great excellent amazing wonderful fantastic terrific outstanding superb
    brilliant awesome happy glad pleased delighted satisfied content joy joyful
    love loving like enjoy enjoyed positive beautiful perfect best better
    impressive thank thanks grateful appreciate appreciated helpful useful
    valuable beneficial effective success successful accomplish accomplished
    achievement recommend recommended worth worthy worthwhile
    """.split()
)

NEGATIVE_WORDS = frozenset(
    """
    bad terrible horrible awful poor disappointing disappointed dissatisfied
    unhappy sad upset angry annoyed frustrated irritated hate dislike despise
    negative ugly worst worse fail failed failure problem issue trouble difficult
    hard complicated confusing confused mistake error wrong incorrect useless
    worthless waste wasted ineffective inadequate insufficient mediocre subpar
    unacceptable complaint complain complained sorry apology apologize
    """.split()
)

INTENSIFIERS = frozenset(
    """
    very extremely incredibly really truly absolutely completely totally utterly
    highly especially particularly exceptionally remarkably notably decidedly
    exceedingly immensely intensely strongly deeply profoundly thoroughly
    entirely fully quite rather somewhat fairly pretty so too
    """.split()
)

NEGATORS = frozenset(
    "not no never neither nor nobody nothing hardly barely without "
    "dont doesnt didnt isnt arent wasnt werent cant couldnt wont wouldnt shouldnt".split()
)

# A negator flips the next sentiment word within this many words
NEGATION_SPAN = 3


@dataclass
class SentimentScore:
    score: float
    label: str
    confidence: float


class SentimentAnalyzer(MemoryProcessor):
    """Adds ``metadata["sentiment"]``; optionally appends a sentiment line."""

    name = "sentiment_analyzer"

    def __init__(
        self,
        roles: list[str] | None = None,
        positive_threshold: float = 0.05,
        negative_threshold: float = -0.05,
        annotate_content: bool = False,
        positive_words: list[str] | None = None,
        negative_words: list[str] | None = None,
        intensifiers: list[str] | None = None,
    ):
        self.roles = {MessageRole(r) for r in (roles or ["user", "assistant"])}
        self.positive_threshold = positive_threshold
        self.negative_threshold = negative_threshold
        self.annotate_content = annotate_content
        self.positive = frozenset(positive_words) if positive_words else POSITIVE_WORDS
        self.negative = frozenset(negative_words) if negative_words else NEGATIVE_WORDS
        self.intensifiers = frozenset(intensifiers) if intensifiers else INTENSIFIERS

    def analyze(self, text: str) -> SentimentScore:
        words = re.sub(r"[^\w\s]", "", text.lower()).split()
        positive = negative = 0.0
        hits = 0
        negated_until = -1

        for i, word in enumerate(words):
            if word in NEGATORS:
                negated_until = i + NEGATION_SPAN
                continue
            polarity = 1 if word in self.positive else -1 if word in self.negative else 0
            if polarity == 0:
                continue

            weight = 2.0 if i > 0 and words[i - 1] in self.intensifiers else 1.0
            if i <= negated_until:
                polarity = -polarity
                negated_until = -1
            if polarity > 0:
                positive += weight
            else:
                negative += weight
            hits += 1

        total = positive + negative
        score = (positive - negative) / total if total else 0.0
        if score >= self.positive_threshold:
            label = "positive"
        elif score <= self.negative_threshold:
            label = "negative"
        else:
            label = "neutral"
        return SentimentScore(score=score, label=label, confidence=min(1.0, hits / 10))

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        for message in messages:
            if message.role not in self.roles or not isinstance(message.content, str):
                result.append(message)
                continue
            sentiment = self.analyze(message.content)
            updated = message.with_metadata(sentiment=asdict(sentiment))
            if self.annotate_content:
                updated = updated.with_changes(
                    content=f"{message.content}\n\nSentiment: {sentiment.label} "
                    f"({round(sentiment.score * 100)}%)"
                )
            result.append(updated)
        return result
