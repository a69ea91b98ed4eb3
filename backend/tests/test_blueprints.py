import pytest

from examprep.errors import ValidationError
from examprep.models.question import Difficulty
from examprep.services.blueprints import blueprint_title, resolve_sections


def test_explicit_sections_win():
    assert resolve_sections("JEE_MAIN_MINI", [" Optics ", "Algebra"]) == ["Optics", "Algebra"]


def test_named_blueprint_case_insensitive():
    assert resolve_sections("jee_main_mini") == ["Mechanics", "Organic Chemistry", "Calculus"]


def test_default_sections():
    assert resolve_sections(default=["A", "B"]) == ["A", "B"]
    assert resolve_sections() == ["Physics", "Chemistry", "Math", "GK"]


def test_unknown_exam_type():
    with pytest.raises(ValidationError):
        resolve_sections("NOT_A_MOCK")


def test_blueprint_title():
    assert blueprint_title("FULL_MOCK", Difficulty.hard) == "Full Mock Test – hard"
    assert blueprint_title("SSC_CGL_MINI") == "SSC CGL Mini Mock"
    assert blueprint_title(None) is None
