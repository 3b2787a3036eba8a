"""Run a batch of quiz-bank documents through their dialect scanners.

Each source is scanned to completion before the next one starts. A source
that cannot be read or scanned is logged and recorded as a failure; the rest
of the batch still runs. The judge normalizer runs once over the whole
collection at the end.
"""
from __future__ import annotations
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pdfminer.high_level import extract_text
from pdfminer.layout import LAParams

from .aggregate import QuestionCollection
from .models import QuestionRecord
from .scanners import scan_document

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".txt", ".md", ".text")
PDF_LAPARAMS = dict(char_margin=3.0, word_margin=0.2, line_margin=0.3)


class UnsupportedSourceError(ValueError):
    pass


@dataclass
class SourceDocument:
    name: str
    category: str
    dialect: str
    text: Optional[str] = None
    path: Optional[Union[str, Path]] = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SourceFailure:
    name: str
    error: str


@dataclass
class ConversionReport:
    records: List[QuestionRecord]
    parsed_counts: Dict[str, int] = field(default_factory=dict)
    failures: List[SourceFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ================================================================
# TEXT LOADING
# ================================================================
def load_source_text(path: Union[str, Path]) -> str:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return path.read_text(encoding="utf-8-sig").replace("\r\n", "\n")
    if suffix == ".pdf":
        return extract_text(str(path), laparams=LAParams(**PDF_LAPARAMS))
    raise UnsupportedSourceError(f"unsupported source type {suffix or '(none)'}: {path.name}")


def _source_text(source: SourceDocument) -> str:
    if source.text is not None:
        return source.text
    if source.path is None:
        raise UnsupportedSourceError(f"source {source.name!r} has neither text nor path")
    return load_source_text(source.path)


# ================================================================
# RUN
# ================================================================
def convert_sources(
    sources: Iterable[SourceDocument],
    collection: Optional[QuestionCollection] = None,
) -> ConversionReport:
    collection = collection if collection is not None else QuestionCollection()
    counts: Dict[str, int] = {}
    failures: List[SourceFailure] = []

    for source in sources:
        try:
            text = _source_text(source)
            records = scan_document(text, source.dialect, **source.options)
        except Exception as e:
            logger.warning("Error processing %s: %s", source.name, e)
            failures.append(SourceFailure(source.name, f"{type(e).__name__}: {e}"))
            continue
        collection.add(records, source.category)
        counts[source.name] = len(records)
        logger.info("Parsed %d questions from %s as category '%s'", len(records), source.name, source.category)

    collection.normalize()
    logger.info("Total questions generated: %d (%d source(s) failed)", len(collection), len(failures))
    return ConversionReport(records=list(collection.records), parsed_counts=counts, failures=failures)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
