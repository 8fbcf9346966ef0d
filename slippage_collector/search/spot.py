from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Protocol

from slippage_collector.common import log_event
from slippage_collector.quoting import Network, Quote, QuotePayloadError

from .ratio import format_ether, format_ratio


class QuoteSource(Protocol):
    async def get_quote(self, network: Network, from_base: bool, amount: int) -> Quote:
        ...


@dataclass(slots=True, frozen=True)
class Spot:
    network: Network
    from_base: bool
    quote: Quote
    ratio: Fraction

    @property
    def from_token_amount(self) -> int:
        return self.quote.from_token_amount


@dataclass(slots=True, frozen=True)
class SlippageResult:
    ratio: Fraction
    quote: Quote


class SpotAnchor:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        quotes: QuoteSource,
        primary_spot_amount: int,
        secondary_spot_amount: int,
    ) -> None:
        self._logger = logger
        self._quotes = quotes
        self._primary_spot_amount = int(primary_spot_amount)
        self._secondary_spot_amount = int(secondary_spot_amount)

    def spot_amount_for(self, network: Network) -> int:
        if network.is_primary:
            return self._primary_spot_amount
        return self._secondary_spot_amount

    async def get_spot(self, network: Network, from_base: bool) -> Spot:
        direction = network.direction_label(from_base)
        log_event(
            self._logger,
            level="info",
            event="spot_requested",
            message=f"Getting spot for {network.name} {direction}...",
            network=network.name,
            direction=direction,
        )
        quote = await self._quotes.get_quote(network, from_base, self.spot_amount_for(network))
        if quote.to_token_amount <= 0:
            raise QuotePayloadError(f"spot quote on {network.name} produced no output: {quote!r}")
        spot = Spot(network=network, from_base=from_base, quote=quote, ratio=quote.ratio)
        log_event(
            self._logger,
            level="info",
            event="spot_resolved",
            message=f"... got {format_ratio(spot.ratio)}",
            network=network.name,
            direction=direction,
            spot_ratio=str(spot.ratio),
            from_token_amount=str(quote.from_token_amount),
            to_token_amount=str(quote.to_token_amount),
        )
        return spot

    async def measure(self, spot: Spot, amount: int) -> SlippageResult:
        """Quote ``amount`` in the spot's direction and compare it to the spot."""
        log_event(
            self._logger,
            level="info",
            event="slippage_requested",
            message=f"Getting slippage @ {format_ether(amount)}...",
            network=spot.network.name,
            amount=str(amount),
        )
        quote = await self._quotes.get_quote(spot.network, spot.from_base, amount)
        slippage = quote.ratio / spot.ratio
        log_event(
            self._logger,
            level="info",
            event="slippage_resolved",
            message=f"... got {format_ratio(slippage)}",
            network=spot.network.name,
            amount=str(amount),
            slippage=str(slippage),
        )
        return SlippageResult(ratio=slippage, quote=quote)
