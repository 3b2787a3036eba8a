import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from quiz_converter.models import QuestionRecord, QuestionType
from quiz_converter.normalize import normalize_judge_records


def make_record(options, answer, qtype=QuestionType.SINGLE, question="题干"):
    return QuestionRecord(question=question, options=options, answer=answer, type=qtype, id=7, category="c")


def test_true_false_choice_becomes_judge():
    rec = normalize_judge_records([make_record({"A": "正确", "B": "错误"}, "A")])[0]
    assert rec.type is QuestionType.JUDGE
    assert rec.options == {"A": "对", "B": "错"}
    assert rec.answer == "正确"
    assert (rec.id, rec.category, rec.question) == (7, "c", "题干")


def test_reversed_option_order():
    true_rec, false_rec = normalize_judge_records([
        make_record({"A": "错误", "B": "正确"}, "B"),
        make_record({"A": "错误", "B": "正确"}, "A"),
    ])
    assert true_rec.answer == "正确"
    assert false_rec.answer == "错误"


def test_short_vocabulary_is_recognised():
    rec = normalize_judge_records([make_record({"A": "对", "B": "错"}, "B")])[0]
    assert rec.type is QuestionType.JUDGE
    assert rec.answer == "错误"


def test_fill_answer_with_judge_text():
    rec = normalize_judge_records([make_record({}, "正确", qtype=QuestionType.FILL)])[0]
    assert rec.type is QuestionType.JUDGE
    assert rec.options == {"A": "对", "B": "错"}
    assert rec.answer == "正确"


def test_other_records_untouched():
    records = [
        make_record({"A": "正确", "B": "错误", "C": "不确定"}, "A"),
        make_record({"A": "北京", "B": "上海"}, "A"),
        make_record({}, "print", qtype=QuestionType.FILL),
    ]
    assert normalize_judge_records(records) == records


def test_normalization_is_idempotent():
    records = [
        make_record({"A": "正确", "B": "错误"}, "B"),
        make_record({"A": "北京", "B": "上海"}, "A"),
        make_record({}, "错误", qtype=QuestionType.FILL),
    ]
    once = normalize_judge_records(records)
    assert normalize_judge_records(once) == once
