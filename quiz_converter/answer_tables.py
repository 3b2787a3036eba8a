from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_TABLE = DATA_DIR / "wechat_miniprogram.json"
SECTION_MODES = ("single", "fill", "judge")

# mode -> ordinal -> answer
AnswerTable = Dict[str, Dict[int, str]]


def build_answer_table(raw: Mapping[str, Mapping[Any, Any]]) -> AnswerTable:
    """Coerce a JSON-shaped mapping into ``{mode: {ordinal: answer}}``.

    Unknown modes and ordinals that are not integers raise ``ValueError``;
    blank answers are dropped.
    """
    table: AnswerTable = {}
    for mode, entries in raw.items():
        if mode not in SECTION_MODES:
            raise ValueError(f"unknown answer-table section: {mode!r}")
        bucket: Dict[int, str] = {}
        for ordinal, answer in (entries or {}).items():
            try:
                key = int(ordinal)
            except (TypeError, ValueError):
                raise ValueError(f"{mode}: ordinal {ordinal!r} is not an integer") from None
            text = str(answer or "").strip()
            if text:
                bucket[key] = text
        table[mode] = bucket
    return table


def load_answer_table(path: Optional[Union[str, Path]] = None) -> AnswerTable:
    path = Path(path) if path else DEFAULT_TABLE
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    table = build_answer_table(raw)
    logger.debug("Loaded answer table %s (%s)", path.name,
                 ", ".join(f"{m}={len(v)}" for m, v in table.items()))
    return table
