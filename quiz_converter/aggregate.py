from __future__ import annotations
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List

from .config import FULL_OPTION_KEYS
from .models import QuestionRecord, QuestionType
from .normalize import normalize_judge_records


class QuestionCollection:
    """Running output of a conversion run.

    Ids are handed out here and nowhere else: strictly increasing from
    ``start_id`` in the order sources are added, never reused.
    """

    def __init__(self, start_id: int = 1) -> None:
        self._next_id = start_id
        self.records: List[QuestionRecord] = []

    def add(self, records: Iterable[QuestionRecord], category: str) -> List[QuestionRecord]:
        stamped: List[QuestionRecord] = []
        for record in records:
            stamped.append(replace(record, id=self._next_id, category=category))
            self._next_id += 1
        self.records.extend(stamped)
        return stamped

    def normalize(self) -> None:
        self.records = normalize_judge_records(self.records)

    @property
    def next_id(self) -> int:
        return self._next_id

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[QuestionRecord]:
        return iter(self.records)


# ================================================================
# AUDIT SUMMARY
# ================================================================
def summarize_collection(records: Iterable[QuestionRecord]) -> Dict[str, Dict[str, Any]]:
    grouped: Dict[str, List[QuestionRecord]] = defaultdict(list)
    for record in records:
        grouped[record.category].append(record)

    summary: Dict[str, Dict[str, Any]] = {}
    for category, items in grouped.items():
        type_counts = Counter(r.type.value for r in items)
        option_count_mismatches: List[int] = []
        blank_option_entries: List[int] = []
        text_to_ids: Dict[str, List[int]] = defaultdict(list)

        for r in items:
            if r.type in (QuestionType.SINGLE, QuestionType.MULTIPLE):
                if any(k not in r.options for k in FULL_OPTION_KEYS):
                    option_count_mismatches.append(r.id)
            if any(not (text or "").strip() for text in r.options.values()):
                blank_option_entries.append(r.id)
            text_to_ids[r.question.strip()].append(r.id)

        duplicates = sorted(i for ids in text_to_ids.values() if len(ids) > 1 for i in ids)
        summary[category] = {
            "question_count": len(items),
            "type_counts": dict(sorted(type_counts.items())),
            "option_count_mismatches": sorted(option_count_mismatches),
            "blank_option_entries": sorted(blank_option_entries),
            "duplicate_question_text_ids": duplicates,
        }
    return summary
