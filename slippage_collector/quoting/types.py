from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Any

NATIVE_TOKEN_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
EXCLUDED_PROTOCOL_ID = "ROCKET_POOL"
PRIMARY_NETWORK = "mainnet"


class QuoteServiceError(RuntimeError):
    pass


class QuoteTransportError(QuoteServiceError):
    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url


class QuoteStatusError(QuoteServiceError):
    def __init__(self, message: str, *, url: str, status: int, reason: str = "") -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.reason = reason


class QuotePayloadError(QuoteServiceError):
    pass


@dataclass(slots=True, frozen=True)
class Network:
    name: str
    chain_id: int
    base_token_address: str
    staking_token_address: str
    base_symbol: str = "ETH"
    staking_symbol: str = "rETH"

    @property
    def is_primary(self) -> bool:
        return self.name == PRIMARY_NETWORK

    def token_order(self, from_base: bool) -> tuple[str, str]:
        if from_base:
            return self.base_token_address, self.staking_token_address
        return self.staking_token_address, self.base_token_address

    def direction_label(self, from_base: bool) -> str:
        if from_base:
            return f"{self.base_symbol}-to-{self.staking_symbol}"
        return f"{self.staking_symbol}-to-{self.base_symbol}"


NETWORKS: dict[str, Network] = {
    network.name: network
    for network in (
        Network(
            name="mainnet",
            chain_id=1,
            base_token_address=NATIVE_TOKEN_ADDRESS,
            staking_token_address="0xae78736Cd615f374D3085123A210448E74Fc6393",
        ),
        Network(
            name="arbitrum",
            chain_id=42161,
            base_token_address=NATIVE_TOKEN_ADDRESS,
            staking_token_address="0xec70dcb4a1efa46b8f2d97c310c9c4790ba5ffa8",
        ),
        Network(
            name="optimism",
            chain_id=10,
            base_token_address=NATIVE_TOKEN_ADDRESS,
            staking_token_address="0x9bcef72be871e61ed4fbbc7630889bee758eb81d",
        ),
        Network(
            name="polygon",
            chain_id=137,
            base_token_address=NATIVE_TOKEN_ADDRESS,
            staking_token_address="0x0266F4F08D82372CF0FcbCCc0Ff74309089c74d1",
        ),
    )
}


@dataclass(slots=True, frozen=True)
class Quote:
    network: str
    from_token_amount: int
    from_token_address: str
    to_token_amount: int
    to_token_address: str

    @property
    def ratio(self) -> Fraction:
        if self.from_token_amount <= 0:
            raise QuotePayloadError(
                f"quote on {self.network} consumed no source tokens: {self.from_token_amount}"
            )
        return Fraction(self.to_token_amount, self.from_token_amount)

    @classmethod
    def from_payload(cls, network: str, payload: Any) -> "Quote":
        try:
            return cls(
                network=network,
                from_token_amount=int(payload["fromTokenAmount"]),
                from_token_address=str(payload["fromToken"]["address"]),
                to_token_amount=int(payload["toTokenAmount"]),
                to_token_address=str(payload["toToken"]["address"]),
            )
        except (KeyError, TypeError, ValueError) as error:
            raise QuotePayloadError(
                f"Malformed quote payload on {network}: {error!r}"
            ) from error
