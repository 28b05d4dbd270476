"""
Tests for core/stats.py — subject statistics, bands and numeric primitives.
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.gradebook import Student
from core.stats import (
    ABOVE,
    BAND_KEYS,
    BELOW,
    EQUAL,
    analyze_grades,
    analyze_subject,
    band_counts,
    calculate_cv,
    calculate_mode,
    calculate_std_dev,
    cohort_average,
    safe_float,
    sanitize,
    student_values,
    valid_grades,
)


def _student(idx, grades):
    return Student(id=f"s{idx}", name=f"Student {idx}", grades=grades)


@pytest.fixture
def math_cohort():
    """Two graded students and one without a Math grade."""
    return [
        _student(1, {"Math": 12}),
        _student(2, {"Math": 8}),
        _student(3, {"Math": float("nan")}),
    ]


class TestAnalyzeSubject:

    def test_mixed_cohort(self, math_cohort):
        stats = analyze_subject(math_cohort, "Math", 0)
        assert stats.count == 2
        assert stats.average == 10
        assert stats.count_above_10 == 1
        assert stats.pass_percentage == 50.0
        assert stats.count_12_to_14 == 1
        assert stats.count_8_to_9 == 1
        others = [k for k in BAND_KEYS if k not in ("count_12_to_14", "count_8_to_9")]
        assert all(getattr(stats, k) == 0 for k in others)

    def test_population_std_dev(self, math_cohort):
        stats = analyze_subject(math_cohort, "Math", 0)
        assert stats.std_dev == pytest.approx(2.0)
        assert stats.cv == pytest.approx(20.0)

    def test_empty_cohort_is_all_zero(self):
        stats = analyze_subject([], "Math", 0)
        assert stats.average == 0
        assert stats.std_dev == 0
        assert stats.cv == 0
        assert stats.mode == 0
        assert stats.count_above_10 == 0
        assert stats.pass_percentage == 0
        assert all(v == 0 for v in stats.bands.values())

    def test_identical_grades(self):
        cohort = [_student(i, {"Math": 15}) for i in range(4)]
        stats = analyze_subject(cohort, "Math", 0)
        assert stats.average == 15
        assert stats.std_dev == 0
        assert stats.cv == 0
        assert stats.mode == 15
        assert stats.count_14_to_16 == 4

    def test_band_counts_sum_to_valid_grades(self):
        grades = [0, 7.99, 8, 8.5, 9, 9.99, 10, 11, 12, 13.5, 14, 15, 16, 17, 18, 20]
        cohort = [_student(i, {"Math": g}) for i, g in enumerate(grades)]
        cohort.append(_student(99, {"Math": "absent"}))
        stats = analyze_subject(cohort, "Math", 0)
        assert sum(stats.bands.values()) == stats.count == len(grades)

    def test_band_edges_are_half_open(self):
        counts = band_counts([8, 10, 18, 7.99])
        assert counts["count_8_to_9"] == 1
        assert counts["count_10_to_12"] == 1
        assert counts["count_above_18"] == 1
        assert counts["count_below_8"] == 1

    def test_out_of_range_grades_land_in_outer_bands(self):
        counts = band_counts([21, 25, -1])
        assert counts["count_above_18"] == 2
        assert counts["count_below_8"] == 1
        assert sum(counts.values()) == 3

    def test_dirty_grades_still_counted(self):
        cohort = [_student(i, {"Math": g}) for i, g in enumerate([21, 25, -1, 12])]
        stats = analyze_subject(cohort, "Math", 0)
        assert stats.count == 4
        assert stats.count_above_18 == 2
        assert stats.count_below_8 == 1
        assert sum(stats.bands.values()) == stats.count
        assert stats.count_above_10 == 3

    def test_malformed_values_skipped(self):
        cohort = [
            _student(1, {"Math": 14}),
            _student(2, {"Math": None}),
            _student(3, {"Math": "n/a"}),
            _student(4, {"Math": float("inf")}),
            _student(5, {"Math": True}),
            _student(6, {}),
        ]
        assert valid_grades(cohort, "Math") == [14.0]

    def test_numeric_strings_are_grades(self):
        cohort = [_student(1, {"Math": "12.5"}), _student(2, {"Math": " 9 "})]
        assert valid_grades(cohort, "Math") == [12.5, 9.0]

    def test_idempotent(self, math_cohort):
        assert analyze_subject(math_cohort, "Math", 9) == analyze_subject(math_cohort, "Math", 9)

    def test_to_dict_is_json_safe(self, math_cohort):
        record = analyze_subject(math_cohort, "Math", 9).to_dict()
        assert record["name"] == "Math"
        assert record["comparison"] == ABOVE
        assert isinstance(record["average"], float)
        assert record["comparison_label"]


class TestComparison:

    def test_above_and_below(self):
        assert analyze_grades("x", [12], 10).comparison == ABOVE
        assert analyze_grades("x", [8], 10).comparison == BELOW

    def test_equal_only_on_exact_match(self):
        assert analyze_grades("x", [10], 10).comparison == EQUAL
        # Exact float equality: rounding noise is not "equal".
        assert analyze_grades("x", [0.1, 0.2], 0.15).comparison != EQUAL


class TestPrimitives:

    def test_cv_guard_on_zero_mean(self):
        assert calculate_cv(3.0, 0) == 0

    def test_std_dev_of_empty(self):
        assert calculate_std_dev([]) == 0

    def test_mode_first_to_reach_top_count(self):
        assert calculate_mode([5, 7, 7, 5]) == 7
        assert calculate_mode([5, 7, 5, 7]) == 5
        assert calculate_mode([]) == 0

    def test_student_values_missing_is_zero(self, math_cohort):
        assert student_values(math_cohort, "Math") == [12.0, 8.0, 0.0]
        assert student_values(math_cohort, None) == [0.0, 0.0, 0.0]

    def test_cohort_average_uses_every_column(self):
        cohort = [_student(1, {"a": 10, "b": 20}), _student(2, {"a": 12})]
        assert cohort_average(cohort) == pytest.approx(14.0)


class TestHelpers:

    def test_safe_float(self):
        assert safe_float("12.5") == 12.5
        assert safe_float(7) == 7.0
        assert safe_float(None) is None
        assert safe_float(True) is None
        assert safe_float(float("nan")) is None
        assert safe_float("-") is None

    def test_sanitize_numpy_values(self):
        result = sanitize({"a": np.int64(3), "b": [np.float64(1.5), np.nan], "c": np.bool_(True)})
        assert result == {"a": 3, "b": [1.5, None], "c": True}
        assert type(result["a"]) is int
