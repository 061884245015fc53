"""
Batch Table - tabular view of batch calculation results.

One row per batch item, in input order, for CSV export.
"""
import json
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..engine.batch import BatchReport


COLUMNS = [
    'index', 'label', 'pricing_model', 'quantity',
    'success', 'total_price', 'error', 'breakdown',
]


def batch_to_frame(report: BatchReport) -> pd.DataFrame:
    """Build a DataFrame with one row per batch item."""
    rows = []
    for item in report.results:
        request = item.request if isinstance(item.request, dict) else {}
        calc_input = request.get('input')
        if not isinstance(calc_input, dict):
            calc_input = request

        row = {
            'index': item.index,
            'label': item.label,
            'pricing_model': request.get('pricingModel', request.get('pricing_model')),
            'quantity': calc_input.get('quantity'),
            'success': item.success,
            'total_price': None,
            'error': item.error,
            'breakdown': None,
        }
        if item.success:
            row['pricing_model'] = item.calculation.applied_model.value
            row['total_price'] = item.calculation.total_price
            row['breakdown'] = json.dumps(item.calculation.breakdown, ensure_ascii=False)
        rows.append(row)

    df = pd.DataFrame(rows, columns=COLUMNS)
    df['total_price'] = pd.to_numeric(df['total_price'])
    return df


def summary_frame(report: BatchReport) -> pd.DataFrame:
    """Single-row DataFrame of the batch summary."""
    summary = report.summary
    return pd.DataFrame([{
        'total': summary.total,
        'successful': summary.successful,
        'failed': summary.failed,
        'total_amount': summary.total_amount,
    }])


def export_batch_csv(report: BatchReport, path: Optional[Union[str, Path]] = None) -> Optional[str]:
    """
    Write the batch table as CSV.

    Args:
        report: batch report to export
        path: output file; when omitted the CSV text is returned

    Returns:
        CSV text when no path is given, otherwise None
    """
    df = batch_to_frame(report)
    if path is None:
        return df.to_csv(index=False)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return None
