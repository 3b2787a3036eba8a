"""Dialect scanners.

Every scanner makes one left-to-right pass over the trimmed, non-empty lines
of a document. At most one ``DraftRecord`` is open at a time; it is sealed
when its answer resolves, when the next ordinal opens a new draft, or at end
of input. Sealing resolves the raw option text, infers the type and drops
drafts that cannot form a valid record.
"""
from __future__ import annotations
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Type, Union

from .answer_tables import AnswerTable, load_answer_table
from .config import (
    ANALYSIS_TOKENS,
    ANSWER_LINE_RE,
    ANSWER_TOKEN_RE,
    DOT_MARKERS,
    DUN_MARKERS,
    ENUMERATED_HEADINGS,
    FULL_OPTION_KEYS,
    JUDGE_ANSWERS,
    JUDGE_FALSE,
    JUDGE_TRUE,
    LOOSE_MARKER_RE,
    MIN_OPTIONS,
    MIXED_MARKERS,
    ORDINAL_ANY_RE,
    ORDINAL_DOT_RE,
    ORDINAL_DUN_RE,
    ORDINAL_ENUM_RE,
    PLAIN_ANSWER_LINE_RE,
    REFERENCE_ANSWER_RE,
    ROW_ANSWER_TOKEN,
    SECTIONED_HEADINGS,
    TYPED_REVIEW_HEADINGS,
)
from .lines import Line, LineClassifier, LineKind, collapse_spaces, first_index, iter_lines
from .markers import (
    extract_inline_answers,
    leading_answer_letters,
    resolve_markers,
    resolve_pattern_markers,
)
from .models import DraftRecord, QuestionRecord, QuestionType, ScanState, infer_type, is_key_answer

logger = logging.getLogger(__name__)

CHOICE_TYPES = (QuestionType.SINGLE, QuestionType.MULTIPLE)
BARE_LETTERS_RE = re.compile(r"^[A-Z]+$")

# (单选题) (多选) (填空题) (简答题) (程序题) ...
TYPE_LABEL_RE = re.compile(r"[(（]\s*(?P<label>单|多|判断|填空|简答|程序)(?:选题|选|题)?\s*[)）]")
LEADING_TYPE_LABEL_RE = re.compile(r"^" + TYPE_LABEL_RE.pattern)
FILL_LABELS = frozenset({"填空", "简答", "程序"})
CODE_ANSWER_RE = re.compile(r"^def\s+answer", re.IGNORECASE)
CODE_LIKE_RE = re.compile(r"^(class\s|def\s|from\s|import\s|for\s|while\s|if\s|print\(|return\b|\w+\s*=)")
QUOTED_RE = re.compile(r"[\"“](.*?)[\"”]")
LIST_CLOSE_RE = re.compile(r"^\s*\]\s*$")
LOOSE_OPTION_HINT_RE = re.compile(r"(?<![A-Za-z])A[．\.、]")
SHORT_FREE_TEXT = 5


class UnknownDialectError(ValueError):
    pass


def _option_key_for(answer: str, options: Dict[str, str]) -> str:
    """Key of the option whose text is exactly *answer*, else *answer* unchanged."""
    for key, text in options.items():
        if text.strip() == answer:
            return key
    return answer


# ================================================================
# SHARED STATE MACHINE
# ================================================================
class DialectScanner:
    dialect = ""
    option_markers: Sequence[str] = DUN_MARKERS
    option_pattern: Optional[re.Pattern] = None
    required_keys = ""        # option keys every choice record must carry
    optionless_fill = False   # fill records without options are acceptable

    def __init__(self) -> None:
        self.classifier = self.build_classifier()
        self.reset()

    def build_classifier(self) -> LineClassifier:
        return LineClassifier()

    def reset(self) -> None:
        self.state = ScanState.IDLE
        self.draft: Optional[DraftRecord] = None
        self.records: List[QuestionRecord] = []

    def preprocess(self, lines: List[str]) -> List[str]:
        return lines

    def scan(self, source: Union[str, Iterable[str]]) -> List[QuestionRecord]:
        self.reset()
        for text in self.preprocess(list(iter_lines(source))):
            self.feed(self.classifier.classify(text))
        self.finalize()
        return list(self.records)

    def feed(self, line: Line) -> None:
        raise NotImplementedError

    # ---------- transitions ----------
    def open_draft(self, ordinal: Optional[int], text: str, **fields) -> DraftRecord:
        self.finalize()
        self.draft = DraftRecord(original_number=ordinal, **fields)
        self.draft.add_question(text)
        self.state = ScanState.QUESTION
        return self.draft

    def collect_options(self, text: str) -> None:
        self.draft.add_options(text)
        self.state = ScanState.OPTIONS

    def finalize(self) -> None:
        draft, self.draft = self.draft, None
        self.state = ScanState.IDLE
        if draft is None:
            return
        record = self.seal(draft)
        if record is None:
            logger.debug("%s: dropped draft #%s %r", self.dialect, draft.original_number,
                         draft.question_text[:40])
            return
        self.records.append(record)

    # ---------- sealing ----------
    def prepare(self, draft: DraftRecord) -> None:
        """Dialect hook run right before sealing."""

    def resolve_options(self, raw: str) -> Dict[str, str]:
        text = collapse_spaces(raw)
        if self.option_pattern is not None:
            return resolve_pattern_markers(text, self.option_pattern)
        return resolve_markers(text, self.option_markers)

    def seal(self, draft: DraftRecord) -> Optional[QuestionRecord]:
        self.prepare(draft)
        question = draft.question_text.strip()
        answer = draft.answer.strip()
        options = dict(draft.options_resolved)
        if not options and draft.raw_option_text.strip():
            options = self.resolve_options(draft.raw_option_text)
        if len(options) < MIN_OPTIONS:
            # not a choice record: keep the stray option text as question text
            if draft.raw_option_text.strip() and not draft.options_resolved:
                question = f"{question} {collapse_spaces(draft.raw_option_text)}".strip()
            options = {}
        if not question or not answer:
            return None
        if options and draft.type is None and not is_key_answer(answer, options):
            # "答案：对" written against "A.对 B.错"
            answer = _option_key_for(answer, options)

        qtype = infer_type(answer, options, draft.type)
        if qtype in CHOICE_TYPES:
            if any(key not in options for key in self.required_keys):
                return None
        elif qtype is QuestionType.FILL and draft.type is not QuestionType.FILL:
            unresolved_choice = bool(options) or not self.optionless_fill or BARE_LETTERS_RE.match(answer)
            if unresolved_choice and answer not in JUDGE_ANSWERS:
                return None

        draft.options_resolved = options
        return QuestionRecord(
            question=question,
            options=options,
            answer=answer,
            type=qtype,
            analysis=draft.analysis_text.strip(),
            original_number=draft.original_number,
        )


# ================================================================
# (a) SINGLE-LINE RECORDS
# ================================================================
class SingleLineScanner(DialectScanner):
    """``1、question A、.. B、.. C、.. D、.. ---答案：A``, one record per line."""

    dialect = "single_line"
    required_keys = FULL_OPTION_KEYS

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(answer=re.compile(re.escape(ROW_ANSWER_TOKEN)), answer_anywhere=True)

    def preprocess(self, lines: List[str]) -> List[str]:
        if lines and "题目" in lines[0] and ROW_ANSWER_TOKEN not in lines[0]:
            return lines[1:]
        return lines

    def feed(self, line: Line) -> None:
        if line.kind is not LineKind.ANSWER_INTRO:
            return
        body = line.before
        ordinal = None
        m = ORDINAL_DUN_RE.match(body)
        if m:
            ordinal, body = int(m.group("num")), body[m.end():]
        idx = first_index(body, self.option_markers)
        question, raw_options = (body[:idx], body[idx:]) if idx != -1 else (body, "")
        draft = self.open_draft(ordinal, question)
        draft.add_options(raw_options)
        draft.answer = line.rest
        self.finalize()


# ================================================================
# (b) SEQUENTIAL, ANSWER-TERMINATED RECORDS
# ================================================================
class SequentialScanner(DialectScanner):
    """``N、`` question, ``A、`` options, ``答案：X`` closing the record.

    The answer line may carry the next question after the letters
    (``答案：A1169、...``); the suffix is fed back through ordinal detection.
    """

    dialect = "sequential"

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(
            ordinal=ORDINAL_DUN_RE,
            answer=ANSWER_TOKEN_RE,
            answer_first=True,
            answer_anywhere=True,
        )

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.ANSWER_INTRO:
            self._on_answer(line)
        elif line.kind is LineKind.NEW_QUESTION:
            self._open(line.ordinal, line.rest)
        else:
            self._collect(line.text)

    def _open(self, ordinal: int, body: str) -> None:
        idx = body.find("A、")
        question, raw_options = (body[:idx], body[idx:]) if idx != -1 else (body, "")
        self.open_draft(ordinal, question)
        if raw_options:
            self.collect_options(raw_options)

    def _collect(self, text: str) -> None:
        if self.draft is None:
            return
        if "A、" in text or self.state is ScanState.OPTIONS:
            self.collect_options(text)
        else:
            self.draft.add_question(text)

    def _on_answer(self, line: Line) -> None:
        if line.before:
            head = self.classifier.classify(line.before)
            if head.kind is LineKind.NEW_QUESTION:
                self._open(head.ordinal, head.rest)
            else:
                self._collect(head.text)
        parsed = leading_answer_letters(line.rest)
        if parsed is None:
            return
        letters, remainder = parsed
        if self.draft is not None:
            self.draft.answer = letters
            self.finalize()
        if remainder and ORDINAL_DUN_RE.match(remainder):
            self.feed(self.classifier.classify(remainder))


# ================================================================
# (c) ANSWER EMBEDDED IN THE QUESTION TEXT
# ================================================================
class EmbeddedAnswerScanner(DialectScanner):
    """``N、question （AB）...`` followed by ``A、``/``A.`` options."""

    dialect = "embedded"
    option_markers = DUN_MARKERS + DOT_MARKERS

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(ordinal=ORDINAL_DUN_RE, option=re.compile(r"^(?P<key>A)[、.]"))

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.NEW_QUESTION:
            idx = line.rest.find("A、")
            question, raw_options = (line.rest[:idx], line.rest[idx:]) if idx != -1 else (line.rest, "")
            self.open_draft(line.ordinal, question)
            if raw_options:
                self.collect_options(raw_options)
        elif self.draft is None:
            return
        elif line.kind is LineKind.OPTION_MARKER or self.state is ScanState.OPTIONS:
            self.collect_options(line.text)
        else:
            self.draft.add_question(line.text)

    def prepare(self, draft: DraftRecord) -> None:
        # the bracket may sit on any wrapped line, so extract from the merged text
        answer, text = extract_inline_answers(draft.question_text)
        draft.question_text = text
        draft.answer = answer


# ================================================================
# (d) TYPE-LABELLED RECORDS
# ================================================================
def _label_type(text: str) -> Optional[QuestionType]:
    m = TYPE_LABEL_RE.search(text)
    if m and m.group("label") in FILL_LABELS:
        return QuestionType.FILL
    return None


class TypedScanner(DialectScanner):
    """``N. (单选题)question`` with ``正确答案:`` lines.

    Fill, short-answer and program labels switch the draft into multi-line
    answer collection, ended by an analysis marker or, for non-program
    answers only, by a line holding just ``]``.
    """

    dialect = "typed"
    option_markers = DOT_MARKERS
    optionless_fill = True

    def __init__(self, require_type_label: bool = False) -> None:
        self.require_type_label = require_type_label
        super().__init__()

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(
            ordinal=ORDINAL_DOT_RE,
            answer=ANSWER_LINE_RE,
            option=re.compile(r"^(?P<key>[A-E])\."),
            headings=TYPED_REVIEW_HEADINGS if self.require_type_label else {},
        )

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.SECTION_HEADING:
            self.finalize()
            return
        if line.kind is LineKind.NEW_QUESTION:
            # review banks number sub-points ("1.可变性") inside one question
            if self.require_type_label and self.draft is not None and not TYPE_LABEL_RE.search(line.rest):
                self.draft.add_question(line.text)
            else:
                self._open(line)
            return
        if self.draft is None:
            return
        if line.kind is LineKind.ANSWER_INTRO:
            self._on_answer(line.rest)
        elif CODE_ANSWER_RE.match(line.text):
            self._start_code_answer(line.text)
        elif self.state is ScanState.ANSWER:
            self._collect_answer(line.text)
        elif self.state is ScanState.ANALYSIS:
            self.draft.add_analysis_line(line.text)
        elif line.kind is LineKind.OPTION_MARKER or self.state is ScanState.OPTIONS:
            self.collect_options(line.text)
        else:
            self.draft.add_question(line.text)

    def _open(self, line: Line) -> None:
        program = bool(re.search(r"[(（]\s*程序题?\s*[)）]", line.rest))
        text = LEADING_TYPE_LABEL_RE.sub("", line.rest, count=1).strip()
        self.open_draft(line.ordinal, text, type=_label_type(line.rest), is_program_answer=program)
        if program:
            self.state = ScanState.ANSWER

    def _on_answer(self, content: str) -> None:
        draft = self.draft
        idx = content.find(ANALYSIS_TOKENS[0])
        if idx != -1:
            draft.analysis_text = content[idx:].strip()
            content = content[:idx].strip()
        if not content:
            draft.type = QuestionType.FILL
            self.state = ScanState.ANSWER
            return
        if CODE_ANSWER_RE.match(content):
            self._start_code_answer(content)
            return
        parsed = leading_answer_letters(content)
        if parsed is not None:
            draft.answer = parsed[0]
        else:
            draft.answer = content
            if len(content) > SHORT_FREE_TEXT and not re.fullmatch(r"[A-E,]+", content):
                draft.type = QuestionType.FILL
        self.finalize()

    def _start_code_answer(self, text: str) -> None:
        self.draft.type = QuestionType.FILL
        self.draft.is_program_answer = True
        self.draft.add_answer_line(text)
        self.state = ScanState.ANSWER

    def _collect_answer(self, text: str) -> None:
        draft = self.draft
        idx = first_index(text, ANALYSIS_TOKENS)
        if idx != -1:
            head = text[:idx].strip()
            if head:
                draft.add_answer_line(head)
            draft.analysis_text = text[idx:].strip()
            self.state = ScanState.ANALYSIS
            return
        if draft.is_program_answer:
            if not draft.question_text and not CODE_LIKE_RE.match(text):
                draft.question_text = text
            else:
                draft.add_answer_line(text)
            return
        m = QUOTED_RE.search(text)
        draft.add_answer_line(m.group(1).strip() if m and m.group(1).strip() else text)
        # known fragile: only a bare "]" line ends a non-program answer
        if LIST_CLOSE_RE.match(text):
            self.state = ScanState.OPTIONS if draft.raw_option_text else ScanState.QUESTION


class LabelledScanner(DialectScanner):
    """``N、(单选题)question`` with ``A.``/``A、`` options and a one-line ``答案：``."""

    dialect = "labelled"
    option_markers = MIXED_MARKERS
    optionless_fill = True

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(
            ordinal=ORDINAL_DUN_RE,
            answer=PLAIN_ANSWER_LINE_RE,
            option=re.compile(r"^(?P<key>[A-E])[\.．]"),
        )

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.NEW_QUESTION:
            text = LEADING_TYPE_LABEL_RE.sub("", line.rest, count=1).strip()
            self.open_draft(line.ordinal, text, type=_label_type(line.rest))
        elif self.draft is None:
            return
        elif line.kind is LineKind.ANSWER_INTRO:
            parsed = leading_answer_letters(line.rest)
            self.draft.answer = parsed[0] if parsed else line.rest
            self.finalize()
        elif (line.kind is LineKind.OPTION_MARKER or self.state is ScanState.OPTIONS
              or "A." in line.text or "A、" in line.text):
            self.collect_options(line.text)
        else:
            self.draft.add_question(line.text)


# ================================================================
# (e) SECTION-HEADED RECORDS
# ================================================================
class SectionedScanner(DialectScanner):
    """Choice section with answers in brackets, then a ``二、简答题`` section.

    ``以下为多选`` forces every later choice record to ``multiple``; in the
    short-answer section ``参考答案：`` opens a free-text answer that runs
    until the next ``N、`` ordinal.
    """

    dialect = "sectioned"
    option_pattern = LOOSE_MARKER_RE
    optionless_fill = True

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(
            ordinal=ORDINAL_ANY_RE,
            answer=REFERENCE_ANSWER_RE,
            option=re.compile(r"^(?P<key>[A-E])(?:[．\.、]|\s)"),
            headings=SECTIONED_HEADINGS,
        )

    def reset(self) -> None:
        super().reset()
        self.in_short_section = False
        self.default_type: Optional[QuestionType] = None

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.SECTION_HEADING:
            if line.name == "short_answer":
                self.finalize()
                self.in_short_section = True
            elif line.name == "multiple_follows":
                self.default_type = QuestionType.MULTIPLE
            return
        if self.in_short_section:
            self._feed_short(line)
            return
        if line.kind is LineKind.NEW_QUESTION:
            self.open_draft(line.ordinal, line.rest, type=self.default_type)
        elif self.draft is None:
            return
        elif line.kind is LineKind.ANSWER_INTRO:
            parsed = leading_answer_letters(line.rest)
            if parsed is not None:
                self.draft.answer = parsed[0]
        elif (line.kind is LineKind.OPTION_MARKER or self.state is ScanState.OPTIONS
              or LOOSE_OPTION_HINT_RE.search(line.text)):
            self.collect_options(line.text)
        else:
            self.draft.add_question(line.text)

    def _feed_short(self, line: Line) -> None:
        if line.kind is LineKind.NEW_QUESTION and ORDINAL_DUN_RE.match(line.text):
            self.open_draft(line.ordinal, line.rest, type=QuestionType.FILL)
        elif self.draft is None:
            return
        elif line.kind is LineKind.ANSWER_INTRO:
            self.draft.answer = line.rest
            self.state = ScanState.ANSWER
        elif self.state is ScanState.ANSWER:
            self.draft.add_answer_line(line.text)
        else:
            self.draft.add_question(line.text)

    def prepare(self, draft: DraftRecord) -> None:
        if draft.type is QuestionType.FILL:
            return
        answer, text = extract_inline_answers(draft.question_text)
        draft.question_text = text
        if not draft.answer:
            draft.answer = answer


# ================================================================
# (f) FIXED-SCHEMA ROWS AND ENUMERATED RECORDS
# ================================================================
class PipeRowScanner(DialectScanner):
    """``question|A|B|C|D|answer`` and ``question|answer`` rows."""

    dialect = "pipe_rows"
    required_keys = FULL_OPTION_KEYS
    optionless_fill = True

    def feed(self, line: Line) -> None:
        if "|" not in line.text:
            return
        parts = [p.strip() for p in line.text.split("|")]
        if len(parts) == 6:
            self._choice_row(parts)
        elif len(parts) == 2:
            self._two_field_row(parts)

    def _choice_row(self, parts: List[str]) -> None:
        question, answer_raw = parts[0], parts[5]
        options = dict(zip(FULL_OPTION_KEYS, parts[1:5]))
        answer = answer_raw.upper()
        if not re.fullmatch(r"[A-D]", answer):
            wanted = answer_raw.casefold()
            answer = next((k for k, v in options.items() if wanted and v.casefold() == wanted), "")
        if not answer or not all(options.values()):
            logger.debug("%s: rejected row %r", self.dialect, question[:40])
            return
        draft = self.open_draft(None, question)
        draft.options_resolved = options
        draft.answer = answer
        self.finalize()

    def _two_field_row(self, parts: List[str]) -> None:
        question, answer_raw = parts
        normalized = answer_raw.replace("。", "").strip()
        if normalized in JUDGE_ANSWERS:
            draft = self.open_draft(None, question, type=QuestionType.JUDGE)
            draft.options_resolved = {"A": JUDGE_TRUE, "B": JUDGE_FALSE}
            draft.answer = normalized
        elif normalized:
            draft = self.open_draft(None, question, type=QuestionType.FILL)
            draft.answer = answer_raw
        else:
            return
        self.finalize()


ENUMERATED_MARKERS = tuple(m for m in MIXED_MARKERS if m[0] in FULL_OPTION_KEYS)
SECTION_TYPES = {
    "single": None,
    "fill": QuestionType.FILL,
    "judge": QuestionType.JUDGE,
}


class EnumeratedScanner(DialectScanner):
    """Numbered items under ``一、单选`` / ``二、填空`` / ``三、判断`` headings.

    The text carries no answers; each item is looked up by section and
    ordinal in an injected answer table and dropped when no entry exists.
    """

    dialect = "enumerated"
    option_markers = ENUMERATED_MARKERS
    required_keys = FULL_OPTION_KEYS
    optionless_fill = True

    def __init__(self, answer_table: Optional[AnswerTable] = None) -> None:
        self.answer_table = answer_table if answer_table is not None else load_answer_table()
        super().__init__()

    def build_classifier(self) -> LineClassifier:
        return LineClassifier(
            ordinal=ORDINAL_ENUM_RE,
            option=re.compile(r"^(?P<key>[A-D])(?:[\.、．]|\s)"),
            headings=ENUMERATED_HEADINGS,
        )

    def reset(self) -> None:
        super().reset()
        self.mode: Optional[str] = None

    def feed(self, line: Line) -> None:
        if line.kind is LineKind.SECTION_HEADING:
            self.finalize()
            self.mode = line.name
            return
        if line.kind is LineKind.NEW_QUESTION:
            if self.mode is None:
                self.finalize()
                return
            body, raw_options = line.rest, ""
            if self.mode == "single":
                idx = first_index(body, self.option_markers)
                if idx != -1:
                    body, raw_options = body[:idx], body[idx:]
            self.open_draft(line.ordinal, body, type=SECTION_TYPES[self.mode])
            if raw_options:
                self.collect_options(raw_options)
            return
        if self.draft is None:
            return
        if self.mode == "single" and (
            line.kind is LineKind.OPTION_MARKER
            or self.state is ScanState.OPTIONS
            or first_index(line.text, self.option_markers) != -1
        ):
            self.collect_options(line.text)
        else:
            self.draft.add_question(line.text)

    def prepare(self, draft: DraftRecord) -> None:
        entries = self.answer_table.get(self.mode or "", {})
        draft.answer = entries.get(draft.original_number, "")


# ================================================================
# REGISTRY
# ================================================================
DIALECTS: Dict[str, Type[DialectScanner]] = {
    cls.dialect: cls
    for cls in (
        SingleLineScanner,
        SequentialScanner,
        EmbeddedAnswerScanner,
        TypedScanner,
        LabelledScanner,
        SectionedScanner,
        PipeRowScanner,
        EnumeratedScanner,
    )
}


def scanner_for(dialect: str, **options) -> DialectScanner:
    try:
        cls = DIALECTS[dialect]
    except KeyError:
        raise UnknownDialectError(
            f"unknown dialect {dialect!r}; expected one of {', '.join(sorted(DIALECTS))}"
        ) from None
    return cls(**options)


def scan_document(source: Union[str, Iterable[str]], dialect: str, **options) -> List[QuestionRecord]:
    return scanner_for(dialect, **options).scan(source)
