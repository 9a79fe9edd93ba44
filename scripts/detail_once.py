"""
One-shot store/item detail lookup from the command line.
Prints the merged result as JSON, e.g.:

    python -m scripts.detail_once store provider_a=<uuid> provider_b=<id>
    python -m scripts.detail_once item provider_b=<id> --key provider_b:store_id=<id>

Reuses AggregationService so the output matches the API.
"""

import argparse
import asyncio
import json
import sys

import structlog

from aggregator.integrations.errors import NoProviderDataError
from aggregator.models.catalog import Provider, ProviderRequest
from aggregator.services.aggregation_service import AggregationService
from aggregator.utils.logger import configure_logging

configure_logging()
logger = structlog.get_logger()


def _parse_requests(pairs: list[str], keys: list[str]) -> list[ProviderRequest]:
    native_keys: dict[Provider, dict[str, str]] = {}
    for key in keys:
        provider_name, _, assignment = key.partition(":")
        name, _, value = assignment.partition("=")
        native_keys.setdefault(Provider(provider_name), {})[name] = value

    requests = []
    for pair in pairs:
        provider_name, _, native_id = pair.partition("=")
        provider = Provider(provider_name)
        requests.append(
            ProviderRequest(
                provider=provider,
                native_id=native_id or None,
                native_keys=native_keys.get(provider, {}),
            )
        )
    return requests


async def main() -> None:
    parser = argparse.ArgumentParser(description="Merged store/item detail lookup")
    parser.add_argument("kind", choices=["store", "item"])
    parser.add_argument("ids", nargs="+", help="provider=native_id, in priority order")
    parser.add_argument(
        "--key",
        action="append",
        default=[],
        help="extra native key for item lookups: provider:name=value",
    )
    parser.add_argument("--retail", action="store_true", help="fetch retail store pages")
    args = parser.parse_args()

    service = AggregationService()
    try:
        requests = _parse_requests(args.ids, args.key)
        if args.kind == "store":
            store = await service.detail_store(requests, retail=args.retail)
            output = store.model_dump(mode="json")
        else:
            result = await service.detail_item(requests)
            output = result.to_response()
        print(json.dumps(output, indent=2))

    except NoProviderDataError as e:
        logger.error("Nothing to merge", error=str(e))
        sys.exit(1)

    finally:
        await service.aclose()


if __name__ == "__main__":
    asyncio.run(main())
