"""Run one place query through the full pipeline and print the JSON response.

Usage:
    python -m scripts.run_query "cari kafe enak di bandung" --max-results 3
    python -m scripts.run_query "Find coffee shops in Jakarta" --lat -6.2 --lng 106.8 --no-cache

Reads the same environment (and backend/.env) as the API server.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")

from api.dependencies import build_services
from domain.models import QueryRequest
from services.places_types import Coordinates
from services.query_orchestrator import NoPlacesFound, QueryFailed
from settings import Settings

LOG = logging.getLogger("run_query")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve a natural-language place query.")
    parser.add_argument("prompt", help="Free-text request, e.g. 'coffee shops in Jakarta'")
    parser.add_argument("--lat", type=float, default=None, help="Bias results around this latitude")
    parser.add_argument("--lng", type=float, default=None, help="Bias results around this longitude")
    parser.add_argument("--max-results", type=int, default=5)
    parser.add_argument("--no-cache", action="store_true", help="Skip cache read and write")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    if not 1 <= args.max_results <= 10:
        parser.error("--max-results must be between 1 and 10")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    services = build_services(Settings())
    request = QueryRequest(
        prompt=args.prompt,
        user_location=Coordinates(args.lat, args.lng) if args.lat is not None else None,
        max_results=args.max_results,
        use_cache=not args.no_cache,
    )
    try:
        result = services.orchestrator.process(request)
    except NoPlacesFound as exc:
        print(json.dumps({"error": str(exc), "request_id": exc.request_id, "llm_text": exc.llm_text}, indent=2))
        return 1
    except QueryFailed as exc:
        LOG.error("Query %s failed: %s", exc.request_id, exc.cause)
        return 2
    finally:
        services.cache.close()

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
