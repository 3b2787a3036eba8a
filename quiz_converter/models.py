from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class QuestionType(str, enum.Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    FILL = "fill"
    JUDGE = "judge"


class ScanState(enum.Enum):
    """Collection mode of a scanner's open draft."""

    IDLE = "idle"
    QUESTION = "question"
    OPTIONS = "options"
    ANSWER = "answer"
    ANALYSIS = "analysis"


# ================================================================
# DATA STRUCTURES
# ================================================================
@dataclass
class DraftRecord:
    """In-progress question owned by exactly one scanner pass."""

    question_text: str = ""
    original_number: Optional[int] = None
    raw_option_text: str = ""
    options_resolved: Dict[str, str] = field(default_factory=dict)
    answer: str = ""
    type: Optional[QuestionType] = None  # None -> infer from answer
    analysis_text: str = ""
    is_program_answer: bool = False

    def add_question(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        self.question_text = f"{self.question_text} {text}" if self.question_text else text

    def add_options(self, text: str) -> None:
        self.raw_option_text += text + " "

    def add_answer_line(self, text: str) -> None:
        self.answer += ("\n" if self.answer else "") + text

    def add_analysis_line(self, text: str) -> None:
        self.analysis_text += ("\n" if self.analysis_text else "") + text


@dataclass(frozen=True)
class QuestionRecord:
    question: str
    options: Dict[str, str]
    answer: str
    type: QuestionType
    id: Optional[int] = None
    category: str = ""
    analysis: str = ""
    original_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "category": self.category,
            "question": self.question,
            "options": dict(self.options),
            "answer": self.answer,
            "type": self.type.value,
        }
        if self.analysis:
            data["analysis"] = self.analysis
        return data


def is_key_answer(answer: str, options: Dict[str, str]) -> bool:
    return bool(answer) and all(ch in options for ch in answer)


def infer_type(
    answer: str,
    options: Dict[str, str],
    declared: Optional[QuestionType] = None,
) -> QuestionType:
    """Resolve the final type of a draft.

    An explicit fill label wins; otherwise an answer made of option keys is
    single or multiple by length (a declared ``MULTIPLE`` forces multiple);
    a declared judge stays judge and anything else falls back to fill.
    """
    if declared is QuestionType.FILL:
        return QuestionType.FILL
    if is_key_answer(answer, options):
        if declared is QuestionType.MULTIPLE or len(answer) > 1:
            return QuestionType.MULTIPLE
        return QuestionType.SINGLE
    if declared is QuestionType.JUDGE:
        return QuestionType.JUDGE
    return QuestionType.FILL
