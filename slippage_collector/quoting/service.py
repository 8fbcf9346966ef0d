from __future__ import annotations

import logging
from typing import Any, Protocol

from slippage_collector.common import log_event

from .types import EXCLUDED_PROTOCOL_ID, Network, Quote, QuotePayloadError


class QuoteTransport(Protocol):
    async def request(
        self,
        chain_id: int,
        method: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        ...


def _protocol_ids(payload: dict[str, Any]) -> list[str]:
    protocols = payload.get("protocols")
    if not isinstance(protocols, list):
        raise QuotePayloadError(f"liquidity-sources payload has no protocol list: {payload!r}")
    try:
        return [str(item["id"]) for item in protocols]
    except (KeyError, TypeError) as error:
        raise QuotePayloadError(f"liquidity-sources entry without id: {error!r}") from error


class QuoteService:
    """Maps (network, direction, amount) to a normalized :class:`Quote`.

    The liquidity-source allow-list is resolved on first use per network and
    kept for the lifetime of the service.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        transport: QuoteTransport,
        excluded_protocols: tuple[str, ...] = (EXCLUDED_PROTOCOL_ID,),
    ) -> None:
        self._logger = logger
        self._transport = transport
        self._excluded_protocols = frozenset(excluded_protocols)
        self._protocols: dict[str, str] = {}

    async def protocols_for(self, network: Network) -> str:
        cached = self._protocols.get(network.name)
        if cached is not None:
            return cached

        payload = await self._transport.request(network.chain_id, "liquidity-sources", {})
        names = [name for name in _protocol_ids(payload) if name not in self._excluded_protocols]
        allow_list = ",".join(names)
        self._protocols[network.name] = allow_list
        log_event(
            self._logger,
            level="info",
            event="protocols_resolved",
            message=f"Resolved {len(names)} liquidity sources for {network.name}",
            network=network.name,
            protocol_count=len(names),
        )
        return allow_list

    async def get_quote(self, network: Network, from_base: bool, amount: int) -> Quote:
        protocols = await self.protocols_for(network)
        from_token, to_token = network.token_order(from_base)
        params = {
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "amount": str(int(amount)),
            "protocols": protocols,
        }
        payload = await self._transport.request(network.chain_id, "quote", params)
        return Quote.from_payload(network.name, payload)
