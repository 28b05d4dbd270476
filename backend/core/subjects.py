"""
subjects.py — Canonical subject registry and raw-label resolution.

Handles:
- The official, ordered list of curriculum subjects
- Per-subject matching rules (exact alternates + keyword fragments)
- Resolving a canonical subject to the raw spreadsheet header that holds it
- Locating the term-average column
- Unmatched-subject diagnostics
"""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


# ── Registry ────────────────────────────────────────────────────────

ARABIC = "اللغة العربية"
AMAZIGH = "اللغة الأمازيغية"
MATHEMATICS = "الرياضيات"
FRENCH = "اللغة الفرنسية"
ENGLISH = "اللغة الإنجليزية"
ISLAMIC_EDUCATION = "التربية الإسلامية"
HISTORY_GEOGRAPHY = "التاريخ والجغرافيا"
CIVIC_EDUCATION = "التربية المدنية"
PHYSICS_TECHNOLOGY = "ع الفيزيائية والتكنولوجيا"
NATURAL_SCIENCES = "ع الطبيعة والحياة"
VISUAL_ARTS = "التربية التشكيلية"
MUSIC = "التربية الموسيقية"
PHYSICAL_EDUCATION = "ت البدنية والرياضية"
COMPUTER_SCIENCE = "المعلوماتية"
TERM_AVERAGE = "معدل الفصل 1"

# Official report order. Never reordered by data.
OFFICIAL_ORDER: Tuple[str, ...] = (
    ARABIC, AMAZIGH, MATHEMATICS, FRENCH, ENGLISH,
    ISLAMIC_EDUCATION, HISTORY_GEOGRAPHY, CIVIC_EDUCATION, PHYSICS_TECHNOLOGY,
    NATURAL_SCIENCES, VISUAL_ARTS, MUSIC, PHYSICAL_EDUCATION,
    COMPUTER_SCIENCE, TERM_AVERAGE,
)

# Subjects proper, without the term average column.
OFFICIAL_SUBJECTS: Tuple[str, ...] = OFFICIAL_ORDER[:-1]

ENGLISH_NAMES: Dict[str, str] = {
    ARABIC: "Arabic Language",
    AMAZIGH: "Amazigh Language",
    MATHEMATICS: "Mathematics",
    FRENCH: "French Language",
    ENGLISH: "English Language",
    ISLAMIC_EDUCATION: "Islamic Education",
    HISTORY_GEOGRAPHY: "History and Geography",
    CIVIC_EDUCATION: "Civic Education",
    PHYSICS_TECHNOLOGY: "Physics and Technology",
    NATURAL_SCIENCES: "Natural and Life Sciences",
    VISUAL_ARTS: "Visual Arts",
    MUSIC: "Music Education",
    PHYSICAL_EDUCATION: "Physical Education",
    COMPUTER_SCIENCE: "Computer Science",
    TERM_AVERAGE: "Term Average",
}

_BY_ENGLISH_NAME = {english: arabic for arabic, english in ENGLISH_NAMES.items()}


def canonical_name(name: str) -> Optional[str]:
    """Return the Arabic canonical name for a canonical or English name."""
    if name in ENGLISH_NAMES:
        return name
    return _BY_ENGLISH_NAME.get(name)


# ── Matching rules ──────────────────────────────────────────────────

class SubjectRule(NamedTuple):
    """A raw label matches when it equals an alternate or contains a keyword."""

    exact: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()

    def matches(self, raw_label: str) -> bool:
        label = raw_label.strip()
        if label in self.exact:
            return True
        return any(keyword in label for keyword in self.keywords)

    def extend(self, *keywords: str) -> "SubjectRule":
        return SubjectRule(self.exact, self.keywords + tuple(keywords))


SUBJECT_RULES: Dict[str, SubjectRule] = {
    ARABIC: SubjectRule(exact=("اللغة عربية",), keywords=("العربية",)),
    AMAZIGH: SubjectRule(keywords=("الأمازيغية", "أمازيغية")),
    MATHEMATICS: SubjectRule(exact=("رياضيات",), keywords=("الرياضيات",)),
    FRENCH: SubjectRule(exact=("لغة فرنسية",), keywords=("الفرنسية",)),
    ENGLISH: SubjectRule(keywords=("الإنجليزية", "انجليزية")),
    ISLAMIC_EDUCATION: SubjectRule(exact=("تربية إسلامية",), keywords=("الإسلامية",)),
    HISTORY_GEOGRAPHY: SubjectRule(keywords=("التاريخ", "جغرافيا")),
    CIVIC_EDUCATION: SubjectRule(exact=("تربية مدنية",), keywords=("المدنية",)),
    PHYSICS_TECHNOLOGY: SubjectRule(keywords=("فيزياء", "فيزيائية", "تكنولوجيا")),
    NATURAL_SCIENCES: SubjectRule(keywords=("طبيعة", "طبيعية", "الحياة")),
    VISUAL_ARTS: SubjectRule(keywords=("تشكيلية",)),
    MUSIC: SubjectRule(keywords=("موسيقية",)),
    PHYSICAL_EDUCATION: SubjectRule(keywords=("بدنية", "رياضية")),
    COMPUTER_SCIENCE: SubjectRule(keywords=("معلوماتية",)),
    TERM_AVERAGE: SubjectRule(keywords=("معدل الفصل",)),
}


# ── Resolution ──────────────────────────────────────────────────────

def resolve_subject(name: str, raw_labels: Iterable[str]) -> Optional[str]:
    """
    Return the first raw label, in the caller's order, that matches the
    canonical subject. None means no match (or an unknown subject).
    """
    key = canonical_name(name)
    rule = SUBJECT_RULES.get(key) if key else None
    if rule is None:
        logger.debug("No matching rule for subject %r", name)
        return None

    for raw in raw_labels:
        if isinstance(raw, str) and rule.matches(raw):
            return raw
    return None


def resolve_official_subjects(
    raw_labels: Sequence[str],
    include_average: bool = True,
) -> List[Tuple[str, str]]:
    """
    Bind every canonical subject to its raw label, in official order.
    Unmatched subjects are left out.
    """
    names = OFFICIAL_ORDER if include_average else OFFICIAL_SUBJECTS
    bindings = []
    for name in names:
        raw = resolve_subject(name, raw_labels)
        if raw is not None:
            bindings.append((name, raw))

    missing = len(names) - len(bindings)
    if missing:
        logger.warning(
            "%d of %d subjects unmatched in %d raw labels",
            missing, len(names), len(raw_labels),
        )
    return bindings


def unmatched_subjects(raw_labels: Sequence[str]) -> List[str]:
    """Canonical subjects with no raw label in this dataset."""
    return [
        name for name in OFFICIAL_ORDER
        if resolve_subject(name, raw_labels) is None
    ]


def average_key(raw_labels: Sequence[str]) -> Optional[str]:
    """
    Raw label holding each student's term average.

    Uploaded gradebooks put the term average in the last column, so the last
    label is used when no header names it explicitly.
    """
    raw = resolve_subject(TERM_AVERAGE, raw_labels)
    if raw is not None:
        return raw
    return raw_labels[-1] if raw_labels else None


# ── Orientation subject groups ──────────────────────────────────────

# Abbreviated headers (ع.ط.ح, ع.ف.ت, ت.ج) are also accepted here.
ORIENTATION_RULES: Dict[str, SubjectRule] = {
    "math": SUBJECT_RULES[MATHEMATICS],
    "science": SUBJECT_RULES[NATURAL_SCIENCES].extend("ع.ط.ح"),
    "physics": SUBJECT_RULES[PHYSICS_TECHNOLOGY].extend("ع.ف.ت"),
    "arabic": SUBJECT_RULES[ARABIC],
    "french": SUBJECT_RULES[FRENCH],
    "english": SUBJECT_RULES[ENGLISH],
    "social": SUBJECT_RULES[HISTORY_GEOGRAPHY].extend("ت.ج"),
}


def orientation_rule(group: str) -> SubjectRule:
    """Matching rule for one orientation subject group."""
    try:
        return ORIENTATION_RULES[group]
    except KeyError:
        raise ValueError(f"Unknown orientation group: {group}") from None
