"""Shared line classification for every dialect scanner.

Each dialect configures one ``LineClassifier`` with its own ordinal, answer
and option patterns; the scanners consume the resulting ``Line`` values in
their own transition tables.
"""
from __future__ import annotations
import enum
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Mapping, Optional, Pattern, Union


class LineKind(enum.Enum):
    SECTION_HEADING = "section_heading"
    NEW_QUESTION = "new_question"
    ANSWER_INTRO = "answer_intro"
    OPTION_MARKER = "option_marker"
    PLAIN = "plain"


@dataclass
class Line:
    kind: LineKind
    text: str
    ordinal: Optional[int] = None
    key: Optional[str] = None
    name: Optional[str] = None
    before: str = ""  # text preceding an answer introducer
    rest: str = ""    # text following the recognised token

    @property
    def is_plain(self) -> bool:
        return self.kind is LineKind.PLAIN


@dataclass
class LineClassifier:
    """Tags one trimmed line.

    Precedence: section heading, then ordinal / answer introducer (order set by
    ``answer_first``), then option marker, else plain text.
    """

    ordinal: Optional[Pattern[str]] = None
    answer: Optional[Pattern[str]] = None
    option: Optional[Pattern[str]] = None
    headings: Mapping[str, str] = field(default_factory=dict)
    answer_first: bool = False
    answer_anywhere: bool = False

    def classify(self, text: str) -> Line:
        text = text.strip()
        for token, name in self.headings.items():
            if token in text:
                return Line(LineKind.SECTION_HEADING, text, name=name)
        if self.answer_first:
            line = self._answer(text) or self._ordinal(text)
        else:
            line = self._ordinal(text) or self._answer(text)
        if line is not None:
            return line
        if self.option is not None:
            m = self.option.match(text)
            if m:
                key = m.groupdict().get("key") or m.group(0)[:1]
                return Line(LineKind.OPTION_MARKER, text, key=key, rest=text[m.end():].strip())
        return Line(LineKind.PLAIN, text, rest=text)

    def _ordinal(self, text: str) -> Optional[Line]:
        if self.ordinal is None:
            return None
        m = self.ordinal.match(text)
        if not m:
            return None
        return Line(LineKind.NEW_QUESTION, text, ordinal=int(m.group("num")), rest=text[m.end():].strip())

    def _answer(self, text: str) -> Optional[Line]:
        if self.answer is None:
            return None
        m = self.answer.search(text) if self.answer_anywhere else self.answer.match(text)
        if not m:
            return None
        return Line(
            LineKind.ANSWER_INTRO,
            text,
            before=text[:m.start()].strip(),
            rest=text[m.end():].strip(),
        )


def iter_lines(source: Union[str, Iterable[str]]) -> Iterator[str]:
    """Yield the non-empty, trimmed lines of a document (CRLF tolerated)."""
    if isinstance(source, str):
        source = source.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    for raw in source:
        stripped = (raw or "").replace("\u00A0", " ").replace("\ufeff", "").strip()
        if stripped:
            yield stripped


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def first_index(text: str, tokens: Iterable[str]) -> int:
    """Smallest index of any token in *text*, -1 if none occurs."""
    found: List[int] = [idx for idx in (text.find(t) for t in tokens) if idx != -1]
    return min(found) if found else -1
