# examprep/services/blueprints.py
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from examprep.errors import ValidationError


@dataclass(frozen=True)
class Blueprint:
    title: str
    sections: Tuple[str, ...]


BLUEPRINTS: Dict[str, Blueprint] = {
    "FULL_MOCK": Blueprint("Full Mock Test", ("Physics", "Chemistry", "Math", "GK")),
    "UPSC_PRELIMS_MINI": Blueprint("UPSC Prelims Mini Mock", ("Indian Freedom Struggle", "Reading Comprehension")),
    "SSC_CGL_MINI": Blueprint("SSC CGL Mini Mock", ("Arithmetic", "General Intelligence")),
    "JEE_MAIN_MINI": Blueprint("JEE Main Mini Mock", ("Mechanics", "Organic Chemistry", "Calculus")),
}


def resolve_sections(
    exam_type: Optional[str] = None,
    sections: Optional[Sequence[str]] = None,
    default: Sequence[str] = BLUEPRINTS["FULL_MOCK"].sections,
) -> List[str]:
    """Explicit sections win, then a named blueprint, then the default list."""
    if sections:
        return [s.strip() for s in sections]
    if exam_type:
        bp = BLUEPRINTS.get(exam_type.strip().upper())
        if bp is None:
            raise ValidationError(f"unknown exam type: {exam_type}")
        return list(bp.sections)
    return list(default)


def blueprint_title(exam_type: Optional[str], difficulty: Optional[str] = None) -> Optional[str]:
    bp = BLUEPRINTS.get(exam_type.strip().upper()) if exam_type else None
    if bp is None:
        return None
    level = getattr(difficulty, "value", difficulty)
    return f"{bp.title} – {level}" if level else bp.title
