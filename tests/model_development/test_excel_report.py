"""
Tests for the Excel training report.
"""

import numpy as np
import pandas as pd
import pytest
from openpyxl import load_workbook

from conftest import TRUE_COEFFICIENTS, make_reduced_data
from lending_rate.config.schema import SelectionConfig
from lending_rate.model_development import excel_reporter
from lending_rate.model_development.evaluator import evaluate_model
from lending_rate.model_development.lasso_selector import LassoPathSelector
from lending_rate.model_development.reduced_model import ReducedModel


@pytest.fixture
def report_inputs(path_data, reduced_data, tmp_path):
    X, y = path_data
    selector = LassoPathSelector(
        SelectionConfig(min_penalty=0.001, max_penalty=1.0, n_penalties=5, n_folds=3),
        output_dir=str(tmp_path / "chart"),
    )
    selector.fit(X, y)
    reduced = ReducedModel(list(TRUE_COEFFICIENTS)).fit(reduced_data)
    performance, calibration = evaluate_model(reduced, make_reduced_data(n=100, seed=5))

    return dict(
        summary={"Run ID": "test_run", "Selected at Best": ["x0", "x1"]},
        imputation_df=pd.DataFrame({"Feature": ["dti"], "Strategy": ["mean"], "Fill_Value": [18.2]}),
        metrics_table=selector.metrics_table,
        coefficient_path=selector.coefficient_path,
        selection_df=selector.selection_frame(),
        reduced_coefficients=reduced.coefficient_frame(),
        test_metrics=performance,
        calibration_tables=calibration,
        chart_path=selector.chart_path_,
    )


class TestGenerateReport:

    def test_sheets(self, report_inputs, tmp_path):
        path = excel_reporter.generate_report(str(tmp_path / "out" / "report.xlsx"), **report_inputs)
        wb = load_workbook(path)

        assert wb.sheetnames == [
            "00_Summary", "01_Imputation", "02_Penalty_Path", "03_Coefficients",
            "04_Selection", "05_Reduced_Model", "06_Test_Metrics", "07_Calibration",
        ]

    def test_penalty_sheet_contents(self, report_inputs, tmp_path):
        path = excel_reporter.generate_report(str(tmp_path / "report.xlsx"), **report_inputs)
        ws = load_workbook(path)["02_Penalty_Path"]

        assert ws.cell(row=1, column=1).value == "penalty"
        assert ws.max_row >= len(report_inputs["metrics_table"]) + 1

    def test_without_calibration_or_chart(self, report_inputs, tmp_path):
        report_inputs.update(calibration_tables=None, chart_path=None, imputation_df=None)
        path = excel_reporter.generate_report(str(tmp_path / "report.xlsx"), **report_inputs)
        wb = load_workbook(path)

        assert "07_Calibration" not in wb.sheetnames
        assert wb["01_Imputation"]["A1"].value == "No data"

    def test_summary_values(self, report_inputs, tmp_path):
        path = excel_reporter.generate_report(str(tmp_path / "report.xlsx"), **report_inputs)
        ws = load_workbook(path)["00_Summary"]

        assert ws["A3"].value == "Run ID"
        assert ws["B3"].value == "test_run"


class TestCellValue:

    def test_conversions(self):
        assert excel_reporter._cell_value(["a", "b"]) == "a, b"
        assert excel_reporter._cell_value(np.nan) is None
        assert excel_reporter._cell_value(np.float64(np.inf)) == "inf"
        assert excel_reporter._cell_value(np.int64(3)) == 3
        assert excel_reporter._cell_value(np.bool_(True)) is True
