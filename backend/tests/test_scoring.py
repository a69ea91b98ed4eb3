from examprep.models.question import Question
from examprep.services import scoring
from examprep.services.review_service import build_review

from conftest import make_questions


def _questions(correct):
    return [Question.model_validate(q) for q in make_questions("S", len(correct), correct)]


def test_scenario_a_partial_score():
    qs = _questions([0, 1, 2])
    assert scoring.score(qs, [0, 1, 3]) == 2


def test_scenario_b_all_unanswered_scores_zero():
    qs = _questions([0, 1, 2])
    assert scoring.score(qs, [None, None, None]) == 0
    assert scoring.score(qs, [-1, -1, -1]) == 0
    assert scoring.encode_answers([None, None, None]) == [-1, -1, -1]

    items = build_review([-1, -1, -1], qs)
    assert [i.is_coaching_candidate for i in items] == [True, True, True]


def test_score_is_total_for_malformed_answers():
    qs = _questions([0, 1, 2])
    assert scoring.score(qs, None) == 0
    assert scoring.score(qs, []) == 0
    assert scoring.score(qs, [0]) == 1
    assert scoring.score(qs, [0, 1, 2, 3, 0]) == 3
    # out of range, bools and strings are simply wrong
    assert scoring.score(qs, [7, True, "2"]) == 0


def test_score_bounded_by_question_count():
    qs = _questions([3, 3])
    assert 0 <= scoring.score(qs, [3, 3, 3, 3]) <= len(qs)


def test_decode_pads_and_drops_sentinel():
    assert scoring.decode_answers([1, -1], 4) == [1, None, None, None]
    assert scoring.decode_answers(None, 2) == [None, None]
    assert scoring.decode_answers([0, 1, 2], 2) == [0, 1]


def test_percentage():
    assert scoring.percentage(2, 3) == 67
    assert scoring.percentage(0, 0) == 0
    assert scoring.percentage(5, 5) == 100


def test_out_of_range_selection_is_not_a_selection():
    assert scoring.as_selection(7) is None
    assert scoring.as_selection(-2) is None
    assert scoring.as_selection(3) == 3
    assert scoring.decode_answers([7, -2, 1], 3) == [None, None, 1]
