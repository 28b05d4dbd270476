"""
Tests for core/templates.py — filling a school's report template.
"""

import os
import sys
import pytest
from openpyxl import Workbook, load_workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.templates import fill_sheet, fill_template, locate_cells, matched_subject, stat_key


def _template():
    wb = Workbook()
    ws = wb.active
    ws.append(["المادة", "معدل المادة", "نسبة النجاح", "عدد الناجحين"])
    ws.append(["الرياضيات", None, None, None])
    ws.append(["اللغة العربية", None, "ملاحظة", None])
    return wb


class TestCellMatching:

    def test_stat_keywords(self):
        assert stat_key("معدل المادة") == "average"
        assert stat_key("نسبة النجاح") == "pass_percentage"
        assert stat_key("عدد الناجحين") == "count_above_10"
        assert stat_key("المتحصلين") == "count_above_10"
        assert stat_key("الأستاذ") is None

    def test_first_keyword_wins(self):
        assert stat_key("عدد المتحصلين على معدل 10") == "average"

    def test_subject_containment_both_ways(self, subjects):
        assert matched_subject("الرياضيات", subjects) == "الرياضيات"
        assert matched_subject("الفيزيائية", subjects) == "ع الفيزيائية والتكنولوجيا"
        assert matched_subject("مادة اللغة العربية", subjects) == "اللغة العربية"
        assert matched_subject("المادة", subjects) is None

    def test_only_text_cells_located(self, subjects):
        wb = _template()
        wb.active.append([12, None, None, None])
        subject_cells, stat_cells = locate_cells(wb.active, subjects)
        assert subject_cells == [(2, 1, "الرياضيات"), (3, 1, "اللغة العربية")]
        assert [key for _, _, key in stat_cells] == ["average", "pass_percentage", "count_above_10"]


class TestFillSheet:

    def test_subject_rows_filled(self, school, subjects):
        ws = _template().active
        assert fill_sheet(ws, school, subjects) == 5
        assert ws["B2"].value == 9.0
        assert ws["C2"].value == 33.33
        assert ws["D2"].value == 2
        assert ws["B3"].value == 10.67
        assert ws["D3"].value == 3

    def test_existing_values_kept(self, school, subjects):
        ws = _template().active
        fill_sheet(ws, school, subjects)
        assert ws["C3"].value == "ملاحظة"
        assert ws["A1"].value == "المادة"

    def test_statistic_rows_filled(self, school, subjects):
        wb = Workbook()
        ws = wb.active
        ws.append(["المادة", "الرياضيات", "اللغة العربية"])
        ws.append(["معدل المادة", None, None])
        assert fill_sheet(ws, school, subjects) == 2
        assert ws["B2"].value == 9.0
        assert ws["C2"].value == 10.67

    def test_merged_cells_left_alone(self, school, subjects):
        wb = _template()
        ws = wb.active
        ws.merge_cells("C2:D2")
        assert fill_sheet(ws, school, subjects) == 4
        assert ws["C2"].value == 33.33
        assert ws["D2"].value is None

    def test_nothing_to_fill(self, school, subjects):
        wb = Workbook()
        wb.active.append(["ملاحظات", "الأستاذ"])
        assert fill_sheet(wb.active, school, subjects) == 0


class TestFillTemplate:

    def test_saved_copy(self, tmp_path, school, subjects):
        template = tmp_path / "template.xlsx"
        output = tmp_path / "filled.xlsx"
        _template().save(template)

        assert fill_template(str(template), str(output), school, subjects) == 5
        ws = load_workbook(output).active
        assert ws["B2"].value == 9.0
        # Template itself is untouched.
        assert load_workbook(template).active["B2"].value is None
