"""
Tests for core/subject_analysis.py — subject table, sections, matrix, categories.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.subject_analysis import (
    compute_category_analysis,
    compute_performance_matrix,
    compute_section_comparison,
    compute_subject_table,
    filter_cohort,
    levels_of,
    sections_of,
)
from core.subjects import (
    AMAZIGH,
    ARABIC,
    CIVIC_EDUCATION,
    MATHEMATICS,
    TERM_AVERAGE,
)
from conftest import FOURTH_YEAR, THIRD_YEAR


class TestCohortFilters:

    def test_all_keeps_everyone(self, school):
        assert len(filter_cohort(school, "all")) == 6
        assert len(filter_cohort(school)) == 6

    def test_level_and_section(self, school):
        assert len(filter_cohort(school, FOURTH_YEAR)) == 4
        assert len(filter_cohort(school, FOURTH_YEAR, "02")) == 2

    def test_sections_and_levels(self, school):
        assert sections_of(school) == ["01", "02"]
        assert levels_of(school) == [FOURTH_YEAR, THIRD_YEAR]


class TestSubjectTable:

    def test_rows_in_official_order(self, school, subjects):
        table = compute_subject_table(school, subjects, FOURTH_YEAR)
        names = [row["display_name"] for row in table["subjects"]]
        assert names[0] == ARABIC
        assert names[2] == MATHEMATICS
        assert names[-1] == TERM_AVERAGE
        assert [row["official_index"] for row in table["subjects"]] == sorted(
            row["official_index"] for row in table["subjects"]
        )

    def test_math_row(self, school, subjects):
        table = compute_subject_table(school, subjects, FOURTH_YEAR)
        math = next(r for r in table["subjects"] if r["display_name"] == MATHEMATICS)
        assert table["student_count"] == 4
        assert math["english_name"] == "Mathematics"
        assert math["average"] == pytest.approx(9.5)
        assert math["count_above_10"] == 1
        assert math["pass_percentage"] == pytest.approx(25.0)

    def test_compared_with_level_average(self, school, subjects):
        table = compute_subject_table(school, subjects, FOURTH_YEAR)
        for row in table["subjects"]:
            expected = "above" if row["average"] > table["reference_average"] else "below"
            assert row["comparison"] == expected

    def test_empty_level(self, school, subjects):
        table = compute_subject_table(school, subjects, "السنة الأولى متوسط")
        assert table["student_count"] == 0
        assert all(row["average"] == 0 for row in table["subjects"])


class TestSectionComparison:

    def test_math_by_section(self, school, subjects):
        result = compute_section_comparison(school, subjects, MATHEMATICS, FOURTH_YEAR)
        first, second = result["sections"]
        assert result["raw_label"] == "الرياضيات"
        assert first == {"section": "01", "average": 12.5, "pass_rate": 50.0, "cv": 28.0, "count": 2}
        assert second["average"] == 6.5
        assert second["pass_rate"] == 0
        assert second["cv"] == pytest.approx(7.7)
        assert result["level_average"] == pytest.approx(9.5)

    def test_english_alias(self, school, subjects):
        result = compute_section_comparison(school, subjects, "Mathematics", FOURTH_YEAR)
        assert result["subject"] == MATHEMATICS

    def test_unresolved_subject(self, school, subjects):
        result = compute_section_comparison(school, subjects, CIVIC_EDUCATION, FOURTH_YEAR)
        assert result["raw_label"] is None
        assert result["sections"] == []
        assert result["level_average"] == 0


class TestPerformanceMatrix:

    def test_shape(self, school, subjects):
        matrix = compute_performance_matrix(school, subjects, FOURTH_YEAR)
        assert matrix["sections"] == ["01", "02"]
        assert TERM_AVERAGE not in [r["subject"] for r in matrix["rows"]]

    def test_section_without_grades_is_zero(self, school, subjects):
        matrix = compute_performance_matrix(school, subjects, FOURTH_YEAR)
        amazigh = next(r for r in matrix["rows"] if r["subject"] == AMAZIGH)
        assert amazigh["sections"] == {"01": 6.0, "02": 0.0}


class TestCategoryAnalysis:

    def test_official_order_by_default(self, school, subjects):
        rows = compute_category_analysis(school, subjects, FOURTH_YEAR)
        assert rows[0]["display_name"] == ARABIC
        assert rows[-1]["display_name"] == TERM_AVERAGE

    def test_sort_by_average_descending(self, school, subjects):
        rows = compute_category_analysis(school, subjects, FOURTH_YEAR, sort_by="average", descending=True)
        averages = [r["average"] for r in rows]
        assert averages == sorted(averages, reverse=True)

    def test_manual_order(self, school, subjects):
        rows = compute_category_analysis(school, subjects, FOURTH_YEAR, manual_order=["Mathematics", ARABIC])
        assert [r["display_name"] for r in rows[:3]] == [MATHEMATICS, ARABIC, AMAZIGH]

    def test_bands_cover_every_grade(self, school, subjects):
        for row in compute_category_analysis(school, subjects, FOURTH_YEAR):
            bands = sum(v for k, v in row.items() if k.startswith("count_") and k != "count_above_10")
            assert bands == row["count"]

    def test_unknown_sort_key(self, school, subjects):
        with pytest.raises(ValueError):
            compute_category_analysis(school, subjects, sort_by="median")
