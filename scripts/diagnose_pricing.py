# scripts/diagnose_pricing.py
"""
가격 엔진 진단 스크립트
1. JSON 스냅샷(또는 Supabase)에서 계층/Ratesheet/Surge 설정을 불러옴
2. 지정한 구간의 가격을 계산하고 시간대별 결정 로그를 출력

실행:
    python scripts/diagnose_pricing.py --snapshot scripts/sample_snapshot.json \
        --sub-location sl-1 --start 2026-01-13T08:00:00 --end 2026-01-13T12:00:00
    python scripts/diagnose_pricing.py --supabase --sub-location <id> --start ... --end ...
"""
import argparse
import json
import logging
import os
import sys
from datetime import datetime

# Add project root to path for module discovery
sys.path.append(os.getcwd())

from dotenv import load_dotenv

from venue_pricing.exception.base_exception import BaseCustomException
from venue_pricing.models.pricing import PricingOptions, PricingResult
from venue_pricing.repositories.memory import InMemoryPricingRepository
from venue_pricing.services.pricing_service import PricingService

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr)
    ]
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Venue Pricing Diagnostic")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--snapshot", type=str, help="Path to a JSON snapshot (customers, locations, subLocations, events, ratesheets, surgeConfigs)")
    source.add_argument("--supabase", action="store_true", help="Read from Supabase (SUPABASE_URL / SUPABASE_KEY)")

    parser.add_argument("--sub-location", required=True, help="SubLocation ID")
    parser.add_argument("--start", required=True, type=datetime.fromisoformat, help="Booking start (ISO-8601)")
    parser.add_argument("--end", required=True, type=datetime.fromisoformat, help="Booking end (ISO-8601)")
    parser.add_argument("--event-id", default=None, help="Pin pricing to one event")
    parser.add_argument("--event-booking", action="store_true", help="Treat as an event booking ($0 grace windows stay free)")
    parser.add_argument("--timezone", default=None, help="Timezone override (IANA name)")
    parser.add_argument("--duration-context", action="store_true", help="Evaluate DURATION_BASED windows from the booking start")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--strict", action="store_true", help="Exit non-zero if any hour is unresolved")
    return parser


def load_repository(args):
    if args.supabase:
        from venue_pricing.repositories.supabase_repository import SupabasePricingRepository
        return SupabasePricingRepository()
    with open(args.snapshot, encoding="utf-8") as f:
        return InMemoryPricingRepository.from_snapshot(json.load(f))


def print_report(result: PricingResult):
    print(f"\n📋 SubLocation {result.sub_location_id} ({result.timezone})")
    print(f"{'#':>3}  {'Time slot':<15} {'Source':<13} {'Price/hr':>10}  Selected / reason")
    print("-" * 90)
    for entry in result.decision_log:
        price = f"{entry.price_per_hour:.2f}" if entry.price_per_hour is not None else "-"
        print(f"{entry.hour:>3}  {entry.time_slot:<15} {entry.source.value:<13} {price:>10}  {entry.selected_ratesheet or '-'} / {entry.reason}")
        if entry.rejected_ratesheets:
            print(f"{'':>34}rejected: {', '.join(entry.rejected_ratesheets)}")
    print("-" * 90)
    print(f"Total: {result.total_price} {result.currency} over {result.total_hours}h")
    b = result.breakdown
    print(f"Breakdown: ratesheet={b.ratesheet_segments} default={b.default_rate_segments} surge={b.surge_segments} unresolved={b.unresolved_segments}")
    for issue in result.issues:
        print(f"⚠️  [{issue.code.value}] {issue.message}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    repository = load_repository(args)
    service = PricingService(repository, repository, repository)
    options = PricingOptions(
        use_duration_context=args.duration_context,
        is_event_booking=args.event_booking,
        event_id=args.event_id,
        timezone=args.timezone,
    )

    try:
        result = service.resolve_price(args.sub_location, args.start, args.end, options)
    except BaseCustomException as e:
        print(f"❌ [{e.error_code.value}] {e.message}")
        return 1

    if args.json:
        print(json.dumps(result.model_dump(by_alias=True, mode="json"), indent=2, ensure_ascii=False))
    else:
        print_report(result)

    if args.strict and result.has_unresolved:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
