from __future__ import annotations
import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

# ================================================================
# MARKER RESOLUTION
# ================================================================
MARKER_PUNCT = "、.．。:："

ANSWER_LETTERS = r"[A-E](?:[\s、,，]*[A-E])*"
INLINE_ANSWER_RE = re.compile(
    # （AB）
    r"(?P<open>[（(])\s*(?P<enclosed>" + ANSWER_LETTERS + r")\s*[）)]"
    # AB（）
    r"|(?<![A-Za-z])(?P<leading>" + ANSWER_LETTERS + r")\s*(?P<open2>[（(])\s*[）)]"
    # （A，  closing bracket typed as sentence punctuation
    r"|(?P<open3>[（(])\s*(?P<unclosed>" + ANSWER_LETTERS + r")\s*(?P<punct>[。，])"
)
LETTER_RE = re.compile(r"[A-E]")


def marker_key(marker: str) -> str:
    return marker.strip().rstrip(MARKER_PUNCT).strip()


def _split_at(text: str, positions: List[Tuple[int, int, str]]) -> Dict[str, str]:
    """positions: (start, end_of_marker, key) sorted by start."""
    out: Dict[str, str] = {}
    for i, (_, body_start, key) in enumerate(positions):
        end = positions[i + 1][0] if i + 1 < len(positions) else len(text)
        out[key] = text[body_start:end].strip()
    return dict(sorted(out.items()))


def resolve_markers(span: str, markers: Sequence[str]) -> Dict[str, str]:
    """Split *span* into labelled segments at the first occurrence of each marker.

    Markers are ordered by where they occur, not by declaration, so
    ``"B、foo A、bar"`` still yields ``{"A": "bar", "B": "foo"}``. Missing
    markers are simply absent from the result.
    """
    text = span or ""
    positions: List[Tuple[int, int, str]] = []
    for marker in markers:
        idx = text.find(marker)
        if idx != -1:
            positions.append((idx, idx + len(marker), marker_key(marker)))
    positions.sort(key=lambda item: item[0])
    return _split_at(text, positions)


def resolve_pattern_markers(span: str, pattern: Pattern[str]) -> Dict[str, str]:
    """Like ``resolve_markers`` but every match of *pattern* (group ``key``) is a boundary."""
    text = span or ""
    positions = [(m.start(), m.end(), m.group("key")) for m in pattern.finditer(text)]
    return _split_at(text, positions)


# ================================================================
# INLINE ANSWERS
# ================================================================
def _blank(open_bracket: str) -> str:
    return "（）" if open_bracket == "（" else "()"


def extract_inline_answers(text: str) -> Tuple[str, str]:
    """Pull answer letters written inside the question text.

    Returns ``(answer, rewritten_text)``. Each match is replaced by an empty
    bracket pair of the same width; a ``。``/``，`` standing in for the
    closing bracket is kept after the blank. Letters are de-duplicated in
    order of first appearance.
    """
    letters: List[str] = []

    def _repl(m: re.Match) -> str:
        if m.group("enclosed") is not None:
            captured, blank = m.group("enclosed"), _blank(m.group("open"))
        elif m.group("leading") is not None:
            captured, blank = m.group("leading"), _blank(m.group("open2"))
        else:
            captured, blank = m.group("unclosed"), _blank(m.group("open3")) + m.group("punct")
        for ch in LETTER_RE.findall(captured):
            if ch not in letters:
                letters.append(ch)
        return blank

    rewritten = INLINE_ANSWER_RE.sub(_repl, text or "")
    return "".join(letters), rewritten


def leading_answer_letters(text: str) -> Optional[Tuple[str, str]]:
    """``"AB1169、next"`` -> ``("AB", "1169、next")``; None without leading capitals."""
    m = re.match(r"^([A-Z]+)(?![A-Za-z])(.*)$", (text or "").strip(), re.S)
    if not m:
        return None
    return m.group(1), m.group(2).strip()
