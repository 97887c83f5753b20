"""
Excel Reporter

Generates a single Excel workbook with the imputation, penalty path,
selection and reduced model details of one training run.
"""

from typing import Any, Dict, Optional
from pathlib import Path
import logging

import numpy as np
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.drawing.image import Image as OpenpyxlImage


logger = logging.getLogger(__name__)


# Styles
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
BEST_FILL = PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid")
ONE_SE_FILL = PatternFill(start_color="FFF9C4", end_color="FFF9C4", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style='thin'), right=Side(style='thin'),
    top=Side(style='thin'), bottom=Side(style='thin'),
)


def generate_report(
    output_path: str,
    summary: Dict[str, Any],
    imputation_df: Optional[pd.DataFrame],
    metrics_table: pd.DataFrame,
    coefficient_path: pd.DataFrame,
    selection_df: pd.DataFrame,
    reduced_coefficients: pd.DataFrame,
    test_metrics: pd.DataFrame,
    calibration_tables: Optional[Dict[str, pd.DataFrame]] = None,
    chart_path: Optional[str] = None,
) -> str:
    """
    Generate the training report.

    Args:
        output_path: Path for the output Excel file.
        summary: Dict of summary key-value pairs.
        imputation_df: Fill value per column (imputer StepResult table).
        metrics_table: Per-penalty CV metrics.
        coefficient_path: Standardized coefficients, penalty x feature.
        selection_df: Long (penalty, rank, feature, coefficient) table.
        reduced_coefficients: Reduced model coefficient table.
        test_metrics: Performance per partition.
        calibration_tables: Dict of partition -> calibration table (optional).
        chart_path: Path to the penalty path chart PNG (optional).

    Returns:
        Path to the generated Excel file.
    """
    wb = Workbook()

    _write_summary_sheet(wb, summary)
    _write_df_sheet(wb, "01_Imputation", imputation_df)
    _write_df_sheet(wb, "02_Penalty_Path", metrics_table, chart_path=chart_path)
    _write_df_sheet(wb, "03_Coefficients", coefficient_path.reset_index())
    _write_df_sheet(wb, "04_Selection", selection_df)
    _write_df_sheet(wb, "05_Reduced_Model", reduced_coefficients)
    _write_df_sheet(wb, "06_Test_Metrics", test_metrics)

    if calibration_tables:
        combined = []
        for period, table in calibration_tables.items():
            table = table.copy()
            table.insert(0, 'Period', period)
            combined.append(table)
        _write_df_sheet(wb, "07_Calibration", pd.concat(combined, ignore_index=True))

    # Remove default empty sheet if exists
    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    logger.info(f"COMPLETE | Excel saved: {output_path}")
    return output_path


def _write_summary_sheet(wb: Workbook, summary: Dict[str, Any]) -> None:
    """Write the 00_Summary sheet."""
    ws = wb.create_sheet("00_Summary")

    ws.column_dimensions['A'].width = 35
    ws.column_dimensions['B'].width = 60

    ws['A1'] = "Interest Rate Model Training Report"
    ws['A1'].font = Font(bold=True, size=14, color="2F5496")
    ws.merge_cells('A1:B1')

    row = 3
    for key, value in summary.items():
        cell_a = ws.cell(row=row, column=1, value=key)
        cell_b = ws.cell(row=row, column=2, value=str(value))
        cell_a.font = Font(bold=True)
        cell_a.border = THIN_BORDER
        cell_b.border = THIN_BORDER
        row += 1


def _cell_value(value: Any) -> Any:
    """Convert numpy/pandas scalars (and lists) to Excel-safe values."""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if pd.isna(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        if not np.isfinite(value):
            return str(value)
        return float(value)
    return value


def _row_fill(df: pd.DataFrame, row_data: pd.Series) -> Optional[PatternFill]:
    if 'is_best' in df.columns and bool(row_data['is_best']):
        return BEST_FILL
    if 'is_one_se' in df.columns and bool(row_data['is_one_se']):
        return ONE_SE_FILL
    return None


def _write_df_sheet(
    wb: Workbook,
    sheet_name: str,
    df: Optional[pd.DataFrame],
    chart_path: Optional[str] = None,
) -> None:
    """Write a DataFrame to a styled sheet, optionally embedding a chart."""
    ws = wb.create_sheet(sheet_name)
    if df is None or len(df) == 0:
        ws['A1'] = "No data"
        return

    for col_idx, col_name in enumerate(df.columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=str(col_name))
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center')
        cell.border = THIN_BORDER

    for row_idx, (_, row_data) in enumerate(df.iterrows(), 2):
        fill = _row_fill(df, row_data)
        for col_idx, value in enumerate(row_data, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(value))
            cell.border = THIN_BORDER
            if fill:
                cell.fill = fill

    # Auto-fit column widths (sample first 100 rows)
    for col_idx, col_name in enumerate(df.columns, 1):
        max_len = len(str(col_name))
        for r in range(2, min(len(df) + 2, 102)):
            val = ws.cell(row=r, column=col_idx).value
            if val is not None:
                max_len = max(max_len, len(str(val)))
        ws.column_dimensions[
            ws.cell(row=1, column=col_idx).column_letter
        ].width = min(max_len + 3, 40)

    ws.freeze_panes = 'A2'
    ws.auto_filter.ref = ws.dimensions

    if chart_path and Path(chart_path).exists():
        try:
            img = OpenpyxlImage(chart_path)
        except (OSError, ValueError) as e:
            logger.warning(f"EXCEL | Could not embed chart: {e}")
            return
        img.width = 800
        img.height = 480
        ws.add_image(img, f'A{len(df) + 4}')
        logger.info(f"EXCEL | Embedded chart in {sheet_name}")
