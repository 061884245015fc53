#!/usr/bin/env python
"""
Run a batch of calculations from a JSON file and export the results.

The JSON file holds a list of requests (or {"calculations": [...]}),
each with pricingModel, data, quantity and optional baseCost,
billingPeriod, parameters and label.

Usage:
    python scripts/run_batch.py requests.json [output.csv]
"""
import json
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from ratecard.config.settings import configure_logging
from ratecard.engine import run_batch, PricingError
from ratecard.reporting.batch_table import export_batch_csv


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)

    configure_logging()
    requests_path = Path(sys.argv[1])
    with open(requests_path, 'r', encoding='utf-8') as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get('calculations', [])

    try:
        report = run_batch(payload)
    except PricingError as e:
        print(f"❌ Batch rejected: {e}")
        sys.exit(1)

    for item in report.results:
        name = item.label or f"#{item.index}"
        if item.success:
            print(f"  ✅ {name}: ${item.calculation.total_price:,.2f}")
        else:
            print(f"  ❌ {name}: {item.error}")

    summary = report.summary
    print()
    print(f"Total: {summary.total}  Successful: {summary.successful}  Failed: {summary.failed}")
    print(f"Total amount: ${summary.total_amount:,.2f}")

    if len(sys.argv) > 2:
        export_batch_csv(report, sys.argv[2])
        print(f"Results saved to: {sys.argv[2]}")


if __name__ == "__main__":
    main()
