from __future__ import annotations

import asyncio
import sys
from typing import Sequence

from dotenv import load_dotenv

from slippage_collector.common import log_event
from slippage_collector.runtime import parse_settings, run_collection, setup_logger


async def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    settings = parse_settings(argv)
    logger = setup_logger(settings.log_level)

    log_event(
        logger,
        level="info",
        event="collector_started",
        message="Slippage collector started",
        networks=settings.enabled_networks(),
        quote_api=settings.quote_api_base_url,
        tolerance_digits=settings.tolerance_digits,
        rate_limit_ms=settings.rate_limit_ms,
        expiry=settings.expiry,
    )

    try:
        datapoints = await run_collection(settings=settings, logger=logger)
    except Exception as error:
        log_event(
            logger,
            level="exception",
            event="collector_aborted",
            message="Collection aborted; remaining networks were not processed",
            error=str(error),
        )
        return 1

    log_event(
        logger,
        level="info",
        event="collector_finished",
        message="Slippage collector finished",
        datapoints=len(datapoints),
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
