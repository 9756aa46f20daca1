# scripts/smoke_score.py
"""
Score one property end to end against the configured providers.

  python scripts/smoke_score.py "123 Main St, Tampa, FL 33601" --iq
  python scripts/smoke_score.py --property-id abc123 --refresh
"""
import argparse
import asyncio
import json

from sellerscore.db import AsyncSessionLocal, engine
from sellerscore.logging_setup import configure_logging
from sellerscore.models import Base
from sellerscore.service_layer.motivation import build_engine


async def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("address", nargs="?")
    ap.add_argument("--property-id")
    ap.add_argument("--zipcode")
    ap.add_argument("--iq", action="store_true")
    ap.add_argument("--refresh", action="store_true")
    args = ap.parse_args()

    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    motivation = build_engine(AsyncSessionLocal)
    result = await motivation.calculate_seller_motivation(
        address=args.address,
        property_id=args.property_id,
        zipcode=args.zipcode,
        score_type="both" if args.iq else "standard",
        use_cache=not args.refresh,
    )

    std = result.standard_score
    print(f"{result.classification.label}  score={std.score}  band={std.band.value}  confidence={std.confidence}")
    for f in std.factors:
        print(f"  {f.weight:+6.1f}  {f.name}: {f.description}")
    print(std.recommendation)
    if result.dealflow_iq:
        print(f"IQ={result.dealflow_iq.iq_score} via {result.dealflow_iq.source}")
    for e in result.fetch_errors:
        print(f"  ! {e.source}: {e.error}")
    print(json.dumps(result.data_quality.to_dict(), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
