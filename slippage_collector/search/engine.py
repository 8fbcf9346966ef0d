"""Search for the trade size that moves the price by exactly 1%.

A run per (network, direction) goes through these phases:

* expand up: double ``max`` until its slippage ratio drops below the target;
* find lower: halve ``min`` until its slippage ratio is above the target;
* bisect: narrow ``[min, max]`` until a probe is within tolerance of the
  target, or until ``expiry`` steps have been spent against one spot;
* verify: refresh the spot and re-measure the last probe against it. On a miss
  the phases repeat with the fresh spot and the current bracket.

A slippage ratio above the target means the trade is still too small. Quotes
are path dependent, so nothing bounds the number of verify rounds unless
``max_epochs`` is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction

from slippage_collector.common import log_event
from slippage_collector.quoting import Network

from .ratio import TARGET_RATIO, format_ether, format_ratio, within_tolerance
from .spot import SlippageResult, Spot, SpotAnchor


class SlippageSearchError(RuntimeError):
    pass


class NoCrossingFoundError(SlippageSearchError):
    def __init__(self, message: str, *, network: str, from_base: bool, amount: int) -> None:
        super().__init__(message)
        self.network = network
        self.from_base = from_base
        self.amount = amount


class SearchNotConvergedError(SlippageSearchError):
    def __init__(self, message: str, *, network: str, from_base: bool, epochs: int) -> None:
        super().__init__(message)
        self.network = network
        self.from_base = from_base
        self.epochs = epochs


@dataclass(slots=True)
class SearchState:
    min_amount: int
    max_amount: int
    amount: int
    steps: int = 0
    epochs: int = 0


@dataclass(slots=True, frozen=True)
class SearchResult:
    spot: Spot
    slip: SlippageResult


class SlippageSearch:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        anchor: SpotAnchor,
        tolerance: Fraction,
        expiry: int,
        target: Fraction = TARGET_RATIO,
        max_doublings: int = 64,
        max_epochs: int = 0,
    ) -> None:
        self._logger = logger
        self._anchor = anchor
        self._tolerance = tolerance
        self._expiry = max(0, int(expiry))
        self._target = target
        self._max_doublings = max(1, int(max_doublings))
        self._max_epochs = max(0, int(max_epochs))

    @property
    def target(self) -> Fraction:
        return self._target

    @property
    def tolerance(self) -> Fraction:
        return self._tolerance

    def converged(self, slip: SlippageResult) -> bool:
        return within_tolerance(slip.ratio, self._tolerance, self._target)

    def _log_bound(self, spot: Spot, state: SearchState, *, event: str, label: str, amount: int) -> None:
        log_event(
            self._logger,
            level="info",
            event=event,
            message=f"{label}: {format_ether(amount)}",
            network=spot.network.name,
            from_base=spot.from_base,
            min_amount=str(state.min_amount),
            max_amount=str(state.max_amount),
            steps=state.steps,
        )

    async def expand_up(
        self,
        state: SearchState,
        spot: Spot,
    ) -> tuple[SlippageResult, SlippageResult | None]:
        """Grow ``max`` until it moves the price by more than the target.

        Returns the slippage at the final ``max`` and, when ``max`` had to be
        doubled, the slippage at the new ``min`` (the previous ``max``).
        """
        max_slip = await self._anchor.measure(spot, state.max_amount)
        min_slip: SlippageResult | None = None
        doublings = 0
        while max_slip.ratio >= self._target:
            if doublings >= self._max_doublings:
                raise NoCrossingFoundError(
                    f"No {format_ratio(self._target)} crossing on {spot.network.name} after "
                    f"{doublings} doublings (last probe {format_ether(state.max_amount)})",
                    network=spot.network.name,
                    from_base=spot.from_base,
                    amount=state.max_amount,
                )
            state.min_amount = state.max_amount
            min_slip = max_slip
            state.max_amount *= 2
            doublings += 1
            self._log_bound(spot, state, event="search_max_expanded", label="Max", amount=state.max_amount)
            max_slip = await self._anchor.measure(spot, state.max_amount)
        return max_slip, min_slip

    async def find_lower(
        self,
        state: SearchState,
        spot: Spot,
        min_slip: SlippageResult | None,
    ) -> SlippageResult:
        if min_slip is None:
            min_slip = await self._anchor.measure(spot, state.min_amount)
        while min_slip.ratio <= self._target:
            state.min_amount //= 2
            if state.min_amount <= 0:
                raise NoCrossingFoundError(
                    f"Even the smallest trade on {spot.network.name} moves the price past "
                    f"{format_ratio(self._target)}",
                    network=spot.network.name,
                    from_base=spot.from_base,
                    amount=0,
                )
            self._log_bound(spot, state, event="search_min_contracted", label="Min", amount=state.min_amount)
            min_slip = await self._anchor.measure(spot, state.min_amount)
        return min_slip

    async def bisect(
        self,
        state: SearchState,
        spot: Spot,
        min_slip: SlippageResult,
    ) -> SlippageResult:
        state.steps = 0
        state.amount = state.min_amount
        slip = min_slip
        while not self.converged(slip):
            state.amount = (state.min_amount + state.max_amount) // 2
            state.steps += 1
            self._log_bound(spot, state, event="search_bisect_probe", label="Amt", amount=state.amount)
            slip = await self._anchor.measure(spot, state.amount)
            if slip.ratio <= self._target:
                state.max_amount = state.amount
            else:
                state.min_amount = state.amount
            if state.steps > self._expiry:
                log_event(
                    self._logger,
                    level="info",
                    event="search_spot_expired",
                    message=f"Spot expired after {state.steps} steps; refreshing",
                    network=spot.network.name,
                    from_base=spot.from_base,
                    steps=state.steps,
                )
                break
        return slip

    async def find_one_percent_slip(self, network: Network, from_base: bool) -> SearchResult:
        spot = await self._anchor.get_spot(network, from_base)
        state = SearchState(
            min_amount=spot.from_token_amount // 2,
            max_amount=spot.from_token_amount * 2,
            amount=spot.from_token_amount // 2,
        )
        while True:
            state.epochs += 1
            _, min_slip = await self.expand_up(state, spot)
            min_slip = await self.find_lower(state, spot, min_slip)
            await self.bisect(state, spot, min_slip)

            spot = await self._anchor.get_spot(network, from_base)
            slip = await self._anchor.measure(spot, state.amount)
            if self.converged(slip):
                break

            log_event(
                self._logger,
                level="info",
                event="search_verify_missed",
                message=(
                    f"Slippage {format_ratio(slip.ratio)} @ {format_ether(state.amount)} "
                    "drifted against refreshed spot; searching again"
                ),
                network=network.name,
                from_base=from_base,
                epochs=state.epochs,
            )
            if self._max_epochs and state.epochs >= self._max_epochs:
                raise SearchNotConvergedError(
                    f"Search on {network.name} did not converge within {state.epochs} spot refreshes",
                    network=network.name,
                    from_base=from_base,
                    epochs=state.epochs,
                )

        log_event(
            self._logger,
            level="info",
            event="search_converged",
            message=f"Converged on {network.name} @ {format_ether(slip.quote.from_token_amount)}",
            network=network.name,
            from_base=from_base,
            slippage=str(slip.ratio),
            from_token_amount=str(slip.quote.from_token_amount),
            to_token_amount=str(slip.quote.to_token_amount),
            epochs=state.epochs,
        )
        return SearchResult(spot=spot, slip=slip)
