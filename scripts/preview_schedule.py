#!/usr/bin/env python3
"""
Installment Schedule Previewer

Prints the schedule a contract's payment terms would generate, without
touching the database.

Usage:
    python scripts/preview_schedule.py CTR-2025-0001 100.00 --mode INSTALLMENTS --count 3
    python scripts/preview_schedule.py CTR-2025-0002 1200 --mode SUBSCRIPTION --start 2025-01-10 --due-day 10
    python scripts/preview_schedule.py CTR-2025-0003 500 --mode CASH --json

Arguments:
    contract_id: Contract identifier (installment id prefix)
    total_value: Contract value in BRL
    --mode: CASH, INSTALLMENTS or SUBSCRIPTION (Portuguese names accepted)
    --count: Number of installments (INSTALLMENTS)
    --due-day: Day of month for due dates
    --start / --end: Billing start and end dates (YYYY-MM-DD)
    --json: Output raw JSON instead of formatted text
"""
import argparse
import json
import os
import sys
from datetime import date

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from domain.exceptions import InstallmentEngineError
from domain.services import generate_schedule
from domain.services.money import format_brl


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def format_schedule(contract_id: str, installments) -> str:
    """Format schedule for human-readable output."""
    lines = []
    lines.append("=" * 60)
    lines.append(f"SCHEDULE PREVIEW - {contract_id}")
    lines.append("=" * 60)
    lines.append(f"{'#':>3}  {'ID':<22} {'Month':<8} {'Due':<11} {'Amount':>14}")
    for inst in installments:
        lines.append(
            f"{inst.sequence_number:>3}  {inst.id:<22} {inst.competencia:<8} "
            f"{inst.due_date.isoformat():<11} {format_brl(inst.expected_amount):>14}"
        )
    total = sum(inst.expected_amount for inst in installments)
    lines.append("-" * 60)
    lines.append(f"Installments: {len(installments)}    Total: {format_brl(total)}")
    lines.append("=" * 60)
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Preview the installment schedule of a contract")
    parser.add_argument("contract_id", help="Contract identifier")
    parser.add_argument("total_value", help="Contract value, e.g. 1500.00")
    parser.add_argument("--mode", default="INSTALLMENTS", help="Payment mode")
    parser.add_argument("--count", type=int, default=None, help="Number of installments")
    parser.add_argument("--due-day", type=int, default=None, help="Day of month for due dates")
    parser.add_argument("--start", type=parse_date, default=None, help="Billing start date")
    parser.add_argument("--end", type=parse_date, default=None, help="Billing end date")
    parser.add_argument("--json", action="store_true", help="Output raw JSON")

    args = parser.parse_args()

    try:
        installments = generate_schedule(
            args.contract_id,
            args.mode,
            args.total_value,
            installment_count=args.count,
            due_day=args.due_day,
            billing_start_date=args.start,
            billing_end_date=args.end,
        )
    except InstallmentEngineError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        output = [
            {
                "id": inst.id,
                "sequence_number": inst.sequence_number,
                "competencia": inst.competencia,
                "due_date": inst.due_date.isoformat(),
                "expected_amount": str(inst.expected_amount),
                "status": inst.status.value,
            }
            for inst in installments
        ]
        print(json.dumps(output, indent=2))
    else:
        print(format_schedule(args.contract_id, installments))


if __name__ == "__main__":
    main()
