from __future__ import annotations
import re
from typing import Dict, Tuple

# ================================================================
# CONFIG RESTRAINTS
# ================================================================
OPTION_KEYS = "ABCDE"
FULL_OPTION_KEYS = "ABCD"
MIN_OPTIONS = 2

# Option labels per punctuation convention, in declaration order.
DUN_MARKERS: Tuple[str, ...] = tuple(f"{k}、" for k in OPTION_KEYS)
DOT_MARKERS: Tuple[str, ...] = tuple(f"{k}." for k in OPTION_KEYS)
MIXED_MARKERS: Tuple[str, ...] = DOT_MARKERS + DUN_MARKERS
# Word-initial letter followed by punctuation or whitespace ("A． foo B foo").
LOOSE_MARKER_RE = re.compile(r"(?<!\S)(?P<key>[A-E])(?:[．\.、]\s*|\s+)")

# Answer introducers
ROW_ANSWER_TOKEN = "---答案："
ANSWER_TOKEN_RE = re.compile(r"答案[:：]")
ANSWER_LINE_RE = re.compile(r"^(?:正确答案\s*[:：]?|答案\s*[:：])")
PLAIN_ANSWER_LINE_RE = re.compile(r"^答案\s*[:：]")
REFERENCE_ANSWER_RE = re.compile(r"^(?:参考答案|答案)\s*[:：]")
ANALYSIS_TOKENS: Tuple[str, ...] = ("答案解析", "解析：")

# Ordinal prefixes
ORDINAL_DUN_RE = re.compile(r"^(?P<num>\d+)、\s*")
ORDINAL_DOT_RE = re.compile(r"^(?P<num>\d+)\.\s*")
ORDINAL_ANY_RE = re.compile(r"^(?P<num>\d+)[\.．、]\s*")
ORDINAL_ENUM_RE = re.compile(r"^(?P<num>\d+)[\.。]\s*")

# Section headings (substring -> heading name)
TYPED_REVIEW_HEADINGS: Dict[str, str] = {
    "简答题复习": "short_review",
    "编程题复习": "program_review",
}
SECTIONED_HEADINGS: Dict[str, str] = {
    "二、简答题": "short_answer",
    "以下为多选": "multiple_follows",
}
ENUMERATED_HEADINGS: Dict[str, str] = {
    "一、单选": "single",
    "二、填空": "fill",
    "三、判断": "judge",
}

# Judge vocabulary
JUDGE_TRUE = "正确"
JUDGE_FALSE = "错误"
JUDGE_ANSWERS = frozenset({JUDGE_TRUE, JUDGE_FALSE})
JUDGE_OPTIONS: Dict[str, str] = {"A": "对", "B": "错"}
# Option texts that read as true / false when a judge item was typed as A/B choice.
JUDGE_TRUE_TEXTS = frozenset({JUDGE_TRUE, "对"})
JUDGE_FALSE_TEXTS = frozenset({JUDGE_FALSE, "错"})
