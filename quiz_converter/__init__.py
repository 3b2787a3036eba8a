"""Convert heterogeneous quiz-bank text into one collection of question records."""

from .aggregate import QuestionCollection, summarize_collection
from .answer_tables import load_answer_table
from .markers import extract_inline_answers, resolve_markers
from .models import QuestionRecord, QuestionType
from .normalize import normalize_judge_records
from .pipeline import (
    ConversionReport,
    SourceDocument,
    SourceFailure,
    UnsupportedSourceError,
    configure_logging,
    convert_sources,
    load_source_text,
)
from .scanners import DIALECTS, UnknownDialectError, scan_document, scanner_for

__version__ = "0.1.0"

__all__ = [
    "ConversionReport",
    "DIALECTS",
    "QuestionCollection",
    "QuestionRecord",
    "QuestionType",
    "SourceDocument",
    "SourceFailure",
    "UnknownDialectError",
    "UnsupportedSourceError",
    "configure_logging",
    "convert_sources",
    "extract_inline_answers",
    "load_answer_table",
    "load_source_text",
    "normalize_judge_records",
    "resolve_markers",
    "scan_document",
    "scanner_for",
    "summarize_collection",
]
