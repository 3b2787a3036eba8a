from __future__ import annotations
import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from .config import (
    JUDGE_ANSWERS,
    JUDGE_FALSE,
    JUDGE_FALSE_TEXTS,
    JUDGE_OPTIONS,
    JUDGE_TRUE,
    JUDGE_TRUE_TEXTS,
)
from .models import QuestionRecord, QuestionType

logger = logging.getLogger(__name__)


def _is_judge_pair(first: str, second: str) -> bool:
    return (first in JUDGE_TRUE_TEXTS and second in JUDGE_FALSE_TEXTS) or (
        first in JUDGE_FALSE_TEXTS and second in JUDGE_TRUE_TEXTS
    )


def judge_answer(record: QuestionRecord) -> Optional[str]:
    """Canonical ``正确``/``错误`` answer if *record* is a true/false item, else None."""
    answer = (record.answer or "").strip()
    if answer in JUDGE_ANSWERS:
        return answer
    options = record.options or {}
    if set(options) != {"A", "B"} or answer not in options:
        return None
    if not _is_judge_pair(options["A"].strip(), options["B"].strip()):
        return None
    return JUDGE_TRUE if options[answer].strip() in JUDGE_TRUE_TEXTS else JUDGE_FALSE


def normalize_record(record: QuestionRecord) -> QuestionRecord:
    answer = judge_answer(record)
    if answer is None:
        return record
    return replace(record, type=QuestionType.JUDGE, options=dict(JUDGE_OPTIONS), answer=answer)


def normalize_judge_records(records: Iterable[QuestionRecord]) -> List[QuestionRecord]:
    """Reclassify true/false items that scanners emitted as choice or fill records.

    Only type, options and answer are rewritten; each record is handled on its
    own, so running this twice gives the same collection as running it once.
    """
    out: List[QuestionRecord] = []
    rewritten = 0
    for record in records:
        normalized = normalize_record(record)
        if normalized != record:
            rewritten += 1
        out.append(normalized)
    logger.debug("Judge normalization rewrote %d of %d record(s)", rewritten, len(out))
    return out
