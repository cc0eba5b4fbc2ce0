#!/usr/bin/env python
"""
Check the stored price tiers of every supply record.

Usage:
    python scripts/check_tiers.py [path/to/supply_records.csv] [--all]
"""
import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from supply_pricing.config.settings import get_settings
from supply_pricing.services.supply_records_service import SupplyRecordsService


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Validate stored supply record price tiers")
    parser.add_argument('csv_path', nargs='?', default=str(settings.supply_records_csv))
    parser.add_argument('--all', action='store_true', help="report every violation per record")
    args = parser.parse_args()

    service = SupplyRecordsService(
        csv_path=Path(args.csv_path),
        collect_all_violations=args.all or settings.collect_all_violations,
    )

    print("=" * 60)
    print("SUPPLY RECORD TIER CHECK")
    print("=" * 60)
    print(f"Store: {service.csv_path}")
    print()

    failures = service.audit_tiers()
    if failures:
        for record_id, result in failures:
            print(f"❌ {record_id}")
            for error in result.errors:
                print(f"  {error.code}: {error.message}")
        print()
        print(f"{len(failures)} record(s) with invalid price tiers")
        sys.exit(1)

    print("✅ All price tiers valid")


if __name__ == "__main__":
    main()
