from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Iterable, TextIO

from slippage_collector.common import guarded_call, log_event
from slippage_collector.quoting import NETWORKS, Network, QuoteApiClient, QuoteService, RateLimitGate
from slippage_collector.search import SlippageSearch, SpotAnchor, tolerance_from_digits

from .settings import AppSettings


@dataclass(slots=True, frozen=True)
class Datapoint:
    label: str
    timestamp: int
    amount: int

    def header(self) -> str:
        return f"{self.label}:"

    def line(self) -> str:
        return f"{self.timestamp},{self.amount}"


class SlippageCollector:
    """Runs the 1% search for both directions of each network, one at a time."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        search: SlippageSearch,
        output: TextIO | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._logger = logger
        self._search = search
        self._output = output if output is not None else sys.stdout
        self._clock = clock

    async def find_datapoints(self, network: Network) -> tuple[Datapoint, Datapoint]:
        from_base = await self._search.find_one_percent_slip(network, True)
        # Both data points are denominated in the base asset.
        from_base_amount = from_base.slip.quote.from_token_amount
        to_base = await self._search.find_one_percent_slip(network, False)
        to_base_amount = to_base.slip.quote.to_token_amount
        timestamp = int(self._clock())
        return (
            Datapoint(
                label=f"{network.direction_label(True)} {network.name}",
                timestamp=timestamp,
                amount=from_base_amount,
            ),
            Datapoint(
                label=f"{network.direction_label(False)} {network.name}",
                timestamp=timestamp,
                amount=to_base_amount,
            ),
        )

    def emit(self, datapoints: Iterable[Datapoint]) -> None:
        for datapoint in datapoints:
            print(datapoint.header(), file=self._output)
            print(datapoint.line(), file=self._output)
        self._output.flush()

    async def run(self, networks: Iterable[Network]) -> list[Datapoint]:
        collected: list[Datapoint] = []
        for network in networks:
            log_event(
                self._logger,
                level="info",
                event="network_started",
                message=f"Collecting 1% slippage data points on {network.name}",
                network=network.name,
                chain_id=network.chain_id,
            )
            datapoints = await self.find_datapoints(network)
            self.emit(datapoints)
            collected.extend(datapoints)
        return collected


def build_search(
    *,
    settings: AppSettings,
    logger: logging.Logger,
    quotes: QuoteService,
) -> SlippageSearch:
    anchor = SpotAnchor(
        logger=logger,
        quotes=quotes,
        primary_spot_amount=settings.spot_mainnet_wei,
        secondary_spot_amount=settings.spot_layer2_wei,
    )
    return SlippageSearch(
        logger=logger,
        anchor=anchor,
        tolerance=tolerance_from_digits(settings.tolerance_digits),
        expiry=settings.expiry,
        max_doublings=settings.max_doublings,
        max_epochs=settings.max_epochs,
    )


async def run_collection(
    *,
    settings: AppSettings,
    logger: logging.Logger,
    output: TextIO | None = None,
    client: QuoteApiClient | None = None,
) -> list[Datapoint]:
    """Collect data points for every enabled network.

    The first quote or search failure aborts the whole run; data points
    already printed for earlier networks stay printed.
    """
    if client is None:
        client = QuoteApiClient(
            logger=logger,
            gate=RateLimitGate(interval_seconds=settings.rate_limit_ms / 1000),
            api_base_url=settings.quote_api_base_url,
            api_key=settings.quote_api_key,
            timeout_seconds=settings.http_timeout_seconds,
        )
    quotes = QuoteService(logger=logger, transport=client)
    collector = SlippageCollector(
        logger=logger,
        search=build_search(settings=settings, logger=logger, quotes=quotes),
        output=output,
    )
    networks = [NETWORKS[name] for name in settings.enabled_networks()]
    try:
        await client.connect()
        return await collector.run(networks)
    finally:
        await guarded_call(
            client.close,
            logger=logger,
            event="quote_client_close_failed",
            message="Failed to close quote API session",
        )
