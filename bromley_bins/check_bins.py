import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from .collection_dates import now_london
from .config import configure_logging
from .data_fetchers.fetcher_factory import create_fetcher
from .data_fetchers.playwright_fetcher import PlaywrightPageFetcher
from .data_models import ErrorResult, parse_property_id, schedule_as_dict
from .queries import get_bins_for_tomorrow, get_next_collections

load_dotenv()
DEFAULT_BIN_ID = os.environ.get("MY_BIN_ID")
logger = logging.getLogger(__name__)


async def lookup(fetcher, bin_id: int, view: str, clock=now_london):
    """Returns the JSON-ready result for the requested view, or an ErrorResult."""
    if view == "next":
        result = await get_next_collections(fetcher, bin_id, clock)
        return result if isinstance(result, ErrorResult) else result.as_dict()
    if view == "tomorrow":
        return await get_bins_for_tomorrow(fetcher, bin_id, clock)
    schedule = await fetcher.get_schedule(bin_id)
    return schedule if isinstance(schedule, ErrorResult) else schedule_as_dict(schedule)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Check a Bromley bin collection schedule.")
    parser.add_argument("--id", "-i", dest="bin_id", default=DEFAULT_BIN_ID,
                        help="Property (bin) ID (Defaults to MY_BIN_ID env var).")
    view = parser.add_mutually_exclusive_group()
    view.add_argument("--next", "-n", dest="view", action="store_const", const="next",
                      help="Show only the soonest collection and the bins due on it.")
    view.add_argument("--tomorrow", "-t", dest="view", action="store_const", const="tomorrow",
                      help="Show only the bins due tomorrow.")
    parser.add_argument("--source", default="bromley", choices=["bromley"], help="Data source.")
    parser.set_defaults(view="schedule")
    args = parser.parse_args(argv)

    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    bin_id = parse_property_id(args.bin_id)
    if bin_id is None:
        print("Error: a non-negative bin ID is required (--id or MY_BIN_ID).", file=sys.stderr)
        sys.exit(1)

    executable_path = os.environ.get("BROWSER_EXECUTABLE_PATH")
    fetcher = create_fetcher(source=args.source, use_cache=False,
                             page_fetcher=PlaywrightPageFetcher(executable_path=executable_path))

    logger.info(f"Checking bins for ID {bin_id} using source '{args.source}' ({args.view})")
    result = asyncio.run(lookup(fetcher, bin_id, args.view, now_london))

    if isinstance(result, ErrorResult):
        logger.error(f"Lookup failed for {bin_id}: {result.error}")
        print(f"ERROR: {result.error} ({bin_id})", file=sys.stderr)
        if result.cause:
            print(f"Cause: {result.cause}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=4))


if __name__ == "__main__":
    main()
