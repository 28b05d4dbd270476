"""
Shared fixtures: a small two-level school with platform subject headers.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.gradebook import FEMALE, MALE, Student

FOURTH_YEAR = "السنة الرابعة متوسط"
THIRD_YEAR = "السنة الثالثة متوسط"

SUBJECTS = [
    "اللغة العربية",
    "اللغة الأمازيغية",
    "الرياضيات",
    "اللغة الفرنسية",
    "اللغة الإنجليزية",
    "التاريخ والجغرافيا",
    "ع الفيزيائية والتكنولوجيا",
    "ع الطبيعة والحياة",
    "التربية التشكيلية",
    "معدل الفصل 1",
]

# name, level, section, gender, repeater, grades in SUBJECTS order (None = no grade)
ROWS = [
    ("بن علي أحمد", FOURTH_YEAR, "01", MALE, False, [12, 0, 16, 10, 11, 12, 15, 17, 14, 13]),
    ("سعدي مريم", FOURTH_YEAR, "01", FEMALE, False, [16, 12, 9, 15, 16, 14, 9, 10, 15, 12.5]),
    ("قاسمي يوسف", FOURTH_YEAR, "02", MALE, True, [8, None, 7, 6, 9, 8, 10, 9, 11, 9.5]),
    ("حداد سارة", FOURTH_YEAR, "02", FEMALE, False, [7, None, 6, 8, 7, 9, 6, 7, None, 7]),
    ("بن علي أحمد", THIRD_YEAR, "01", MALE, False, [12, 11, 10, 12, 13, 10, 9, 11, 12, 10.5]),
    ("عمراني ليلى", THIRD_YEAR, "01", FEMALE, True, [9, 10, 6, 7, 9, 8, 7, 8, None, 8]),
]


def make_school():
    students = []
    for idx, (name, level, section, gender, repeater, values) in enumerate(ROWS):
        grades = {label: v for label, v in zip(SUBJECTS, values) if v is not None}
        students.append(Student(
            id=f"s{idx}",
            name=name,
            level=level,
            section=section,
            gender=gender,
            is_repeater=repeater,
            grades=grades,
        ))
    return students


@pytest.fixture
def school():
    return make_school()


@pytest.fixture
def subjects():
    return list(SUBJECTS)
