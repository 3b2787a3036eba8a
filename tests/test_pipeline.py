import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from quiz_converter.aggregate import QuestionCollection, summarize_collection
from quiz_converter.answer_tables import build_answer_table, load_answer_table
from quiz_converter.models import QuestionRecord, QuestionType
from quiz_converter.pipeline import (
    SourceDocument,
    UnsupportedSourceError,
    convert_sources,
    load_source_text,
)

SEQUENTIAL_TEXT = "\n".join([
    "1、中国的首都是 A、北京 B、上海",
    "答案：A",
    "2、地球是平的 A、正确 B、错误",
    "答案：B",
])


def make_record(question, options, answer, qtype, record_id=None, category=""):
    return QuestionRecord(
        question=question, options=options, answer=answer, type=qtype, id=record_id, category=category
    )


# ---------- convert_sources ----------
def test_failed_sources_do_not_stop_the_batch(tmp_path, caplog):
    sources = [
        SourceDocument("bank_a.txt", "地理", "sequential", text=SEQUENTIAL_TEXT),
        SourceDocument("bad", "其他", "no_such_dialect", text=SEQUENTIAL_TEXT),
        SourceDocument("missing.txt", "其他", "sequential", path=tmp_path / "missing.txt"),
        SourceDocument("rows", "小程序", "pipe_rows", text="全局样式文件是|app.wxss"),
    ]
    with caplog.at_level(logging.WARNING):
        report = convert_sources(sources)

    assert not report.ok
    assert [f.name for f in report.failures] == ["bad", "missing.txt"]
    assert report.failures[0].error.startswith("UnknownDialectError")
    assert "Error processing bad" in caplog.text
    assert report.parsed_counts == {"bank_a.txt": 2, "rows": 1}

    assert [r.id for r in report.records] == [1, 2, 3]
    assert [r.category for r in report.records] == ["地理", "地理", "小程序"]


def test_judge_items_normalized_after_conversion():
    report = convert_sources([SourceDocument("bank_a.txt", "地理", "sequential", text=SEQUENTIAL_TEXT)])
    capital, flat_earth = report.records
    assert capital.type is QuestionType.SINGLE
    assert flat_earth.type is QuestionType.JUDGE
    assert flat_earth.options == {"A": "对", "B": "错"}
    assert flat_earth.answer == "错误"
    assert flat_earth.id == 2


def test_ids_continue_in_given_collection():
    collection = QuestionCollection(start_id=100)
    convert_sources([SourceDocument("a", "x", "sequential", text=SEQUENTIAL_TEXT)], collection)
    report = convert_sources([SourceDocument("b", "y", "pipe_rows", text="题干|答案文本")], collection)
    assert [r.id for r in collection] == [100, 101, 102]
    assert report.records[-1].category == "y"
    assert collection.next_id == 103


def test_source_without_text_or_path_fails():
    report = convert_sources([SourceDocument("empty", "x", "sequential")])
    assert report.records == []
    assert report.failures[0].error.startswith("UnsupportedSourceError")


def test_to_dict_omits_empty_analysis():
    report = convert_sources([SourceDocument("a", "x", "sequential", text=SEQUENTIAL_TEXT)])
    data = report.records[0].to_dict()
    assert data == {
        "id": 1,
        "category": "x",
        "question": "中国的首都是",
        "options": {"A": "北京", "B": "上海"},
        "answer": "A",
        "type": "single",
    }
    with_analysis = replace(make_record("q", {}, "a", QuestionType.FILL), analysis="解析：略")
    assert with_analysis.to_dict()["analysis"] == "解析：略"


# ---------- load_source_text ----------
def test_text_source_drops_bom_and_crlf(tmp_path):
    path = tmp_path / "bank.txt"
    path.write_bytes("\ufeff1、题目\r\n答案：A\r\n".encode("utf-8"))
    assert load_source_text(path) == "1、题目\n答案：A\n"


def make_pdf(text: str) -> bytes:
    """One-page PDF showing *text* in Helvetica, with a correct xref table."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


def test_pdf_source_text_extracted(tmp_path):
    path = tmp_path / "bank.pdf"
    path.write_bytes(make_pdf("1. Which planet is largest"))
    text = load_source_text(path)
    assert "1. Which planet is largest" in text


def test_unsupported_source_type(tmp_path):
    path = tmp_path / "bank.docx"
    path.write_bytes(b"")
    with pytest.raises(UnsupportedSourceError):
        load_source_text(path)


# ---------- answer tables ----------
def test_answer_table_validation():
    assert build_answer_table({"single": {"1": "A", "2": " "}}) == {"single": {1: "A"}}
    with pytest.raises(ValueError):
        build_answer_table({"essay": {"1": "x"}})
    with pytest.raises(ValueError):
        build_answer_table({"fill": {"first": "x"}})


def test_bundled_and_custom_answer_tables(tmp_path):
    bundled = load_answer_table()
    assert len(bundled["single"]) == 20
    assert bundled["judge"][3] == "正确"

    path = tmp_path / "table.json"
    path.write_text(json.dumps({"fill": {"4": "flex"}}), encoding="utf-8")
    assert load_answer_table(path) == {"fill": {4: "flex"}}


# ---------- summary ----------
def test_summarize_collection():
    records = [
        make_record("同一题", {"A": "x", "B": "y"}, "A", QuestionType.SINGLE, 1, "甲"),
        make_record("同一题", {"A": "x", "B": "y", "C": "z", "D": " "}, "AB", QuestionType.MULTIPLE, 2, "甲"),
        make_record("填空", {}, "答", QuestionType.FILL, 3, "甲"),
        make_record("同一题", {}, "正确", QuestionType.JUDGE, 4, "乙"),
    ]
    summary = summarize_collection(records)

    assert summary["甲"] == {
        "question_count": 3,
        "type_counts": {"fill": 1, "multiple": 1, "single": 1},
        "option_count_mismatches": [1],
        "blank_option_entries": [2],
        "duplicate_question_text_ids": [1, 2],
    }
    assert summary["乙"]["duplicate_question_text_ids"] == []
    assert summary["乙"]["type_counts"] == {"judge": 1}
