"""
Tests for core/profile.py — one student against the class.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.profile import DOMAIN_GROUPS, compute_student_profile
from core.subject_analysis import filter_cohort
from conftest import FOURTH_YEAR


@pytest.fixture
def profile(school, subjects):
    return compute_student_profile(filter_cohort(school, FOURTH_YEAR), subjects, "s0")


class TestStudentProfile:

    def test_identity_and_general_average(self, profile):
        assert profile["name"] == "بن علي أحمد"
        assert profile["section"] == "01"
        assert profile["general_average"] == 13.0

    def test_subjects_in_column_order(self, profile, subjects):
        assert [row["subject"] for row in profile["subjects"]] == subjects[:-1]

    def test_gap_against_class(self, profile):
        math = next(r for r in profile["subjects"] if r["subject"] == "الرياضيات")
        assert math["class_average"] == pytest.approx(9.5)
        assert math["gap"] == pytest.approx(6.5)
        art = next(r for r in profile["subjects"] if r["subject"] == "التربية التشكيلية")
        assert art["class_average"] == pytest.approx(40 / 3)

    def test_strengths_and_weaknesses(self, profile):
        assert [r["subject"] for r in profile["strengths"]] == [
            "الرياضيات",
            "ع الطبيعة والحياة",
            "ع الفيزيائية والتكنولوجيا",
        ]
        assert [r["subject"] for r in profile["weaknesses"]] == [
            "اللغة الأمازيغية",
            "اللغة الإنجليزية",
            "اللغة الفرنسية",
        ]

    def test_domains(self, profile):
        domains = {d["domain"]: d["average"] for d in profile["domains"]}
        assert list(domains) == [name for name, _ in DOMAIN_GROUPS]
        assert domains["اللغات"] == pytest.approx(8.25)
        assert domains["العلوم والرياضيات"] == pytest.approx(16.0)
        assert domains["العلوم الإنسانية"] == pytest.approx(12.0)
        assert domains["المواد الفنية والبدنية"] == pytest.approx(14.0)

    def test_missing_grade_counts_as_zero(self, school, subjects):
        profile = compute_student_profile(filter_cohort(school, FOURTH_YEAR), subjects, "s3")
        art = next(r for r in profile["subjects"] if r["subject"] == "التربية التشكيلية")
        assert art["grade"] is None
        assert art["gap"] == pytest.approx(-40 / 3)

    def test_unknown_student(self, school, subjects):
        assert compute_student_profile(school, subjects, "nobody") is None

    def test_student_outside_cohort(self, school, subjects):
        assert compute_student_profile(filter_cohort(school, FOURTH_YEAR), subjects, "s4") is None
