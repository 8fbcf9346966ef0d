from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, replace
from typing import Any, Sequence

from slippage_collector.quoting import DEFAULT_QUOTE_API_BASE_URL, NETWORKS
from slippage_collector.search import parse_ether

NETWORK_ORDER = ("mainnet", "arbitrum", "optimism", "polygon")


def to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float) -> float:
    try:
        if value is None or str(value).strip() == "":
            return default
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _ether_arg(value: str) -> str:
    try:
        parse_ether(value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(str(error)) from error
    return value


@dataclass(slots=True, frozen=True)
class AppSettings:
    collect_mainnet: bool
    collect_arbitrum: bool
    collect_optimism: bool
    collect_polygon: bool
    quote_api_base_url: str
    quote_api_key: str
    tolerance_digits: int
    rate_limit_ms: int
    expiry: int
    spot_mainnet: str
    spot_layer2: str
    max_doublings: int
    max_epochs: int
    http_timeout_seconds: float
    log_level: str

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            collect_mainnet=to_bool(os.getenv("COLLECT_MAINNET"), True),
            collect_arbitrum=to_bool(os.getenv("COLLECT_ARBITRUM"), True),
            collect_optimism=to_bool(os.getenv("COLLECT_OPTIMISM"), True),
            collect_polygon=to_bool(os.getenv("COLLECT_POLYGON"), False),
            quote_api_base_url=os.getenv("QUOTE_API_BASE_URL", DEFAULT_QUOTE_API_BASE_URL).strip(),
            quote_api_key=os.getenv("QUOTE_API_KEY", "").strip(),
            tolerance_digits=max(0, to_int(os.getenv("TOLERANCE_DIGITS"), 2)),
            rate_limit_ms=max(0, to_int(os.getenv("RATE_LIMIT_MS"), 1000)),
            expiry=max(0, to_int(os.getenv("SEARCH_EXPIRY"), 10)),
            spot_mainnet=os.getenv("SPOT_MAINNET_ETH", "10").strip() or "10",
            spot_layer2=os.getenv("SPOT_LAYER2_ETH", "1").strip() or "1",
            max_doublings=max(1, to_int(os.getenv("SEARCH_MAX_DOUBLINGS"), 64)),
            max_epochs=max(0, to_int(os.getenv("SEARCH_MAX_EPOCHS"), 0)),
            http_timeout_seconds=max(1.0, to_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 30.0)),
            log_level=(os.getenv("LOG_LEVEL", "INFO").strip() or "INFO").upper(),
        )

    @property
    def spot_mainnet_wei(self) -> int:
        return parse_ether(self.spot_mainnet)

    @property
    def spot_layer2_wei(self) -> int:
        return parse_ether(self.spot_layer2)

    def enabled_networks(self) -> list[str]:
        enabled = {
            "mainnet": self.collect_mainnet,
            "arbitrum": self.collect_arbitrum,
            "optimism": self.collect_optimism,
            "polygon": self.collect_polygon,
        }
        return [name for name in NETWORK_ORDER if enabled[name] and name in NETWORKS]


def build_arg_parser(defaults: AppSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Find, per network, the ETH/rETH trade size that moves the aggregator "
            "price by 1% and print it as timestamped data points."
        )
    )
    for name in NETWORK_ORDER:
        parser.add_argument(
            f"--{name}",
            dest=f"collect_{name}",
            action=argparse.BooleanOptionalAction,
            default=getattr(defaults, f"collect_{name}"),
            help=f"Collect data points on {name}.",
        )
    parser.add_argument(
        "--quote-api",
        dest="quote_api_base_url",
        default=defaults.quote_api_base_url,
        help="Quote API base URL. Defaults to QUOTE_API_BASE_URL.",
    )
    parser.add_argument(
        "--api-key",
        dest="quote_api_key",
        default=defaults.quote_api_key,
        help="Quote API key sent as a bearer token. Defaults to QUOTE_API_KEY.",
    )
    parser.add_argument(
        "--tolerance",
        dest="tolerance_digits",
        type=int,
        default=defaults.tolerance_digits,
        help="How precise to be about 1%%: number of zeros needed in 0.99[00000...].",
    )
    parser.add_argument(
        "--rate-limit",
        dest="rate_limit_ms",
        type=int,
        default=defaults.rate_limit_ms,
        help="Milliseconds between the starts of two quote API calls.",
    )
    parser.add_argument(
        "--expiry",
        type=int,
        default=defaults.expiry,
        help="Maximum number of binary search steps before refreshing spot.",
    )
    parser.add_argument(
        "--spot-mainnet",
        type=_ether_arg,
        default=defaults.spot_mainnet,
        help="ETH amount for spot price on mainnet.",
    )
    parser.add_argument(
        "--spot-layer2",
        type=_ether_arg,
        default=defaults.spot_layer2,
        help="ETH amount for spot price on networks other than mainnet.",
    )
    parser.add_argument(
        "--max-doublings",
        type=int,
        default=defaults.max_doublings,
        help="Give up when the upper bound has been doubled this many times without a crossing.",
    )
    parser.add_argument(
        "--max-epochs",
        type=int,
        default=defaults.max_epochs,
        help="Give up after this many spot refreshes. Use 0 to search until convergence.",
    )
    parser.add_argument(
        "--timeout",
        dest="http_timeout_seconds",
        type=float,
        default=defaults.http_timeout_seconds,
        help="Total HTTP timeout per quote API request, in seconds.",
    )
    parser.add_argument("--log-level", default=defaults.log_level)
    return parser


def parse_settings(argv: Sequence[str] | None = None, *, defaults: AppSettings | None = None) -> AppSettings:
    base = defaults if defaults is not None else AppSettings.from_env()
    args = build_arg_parser(base).parse_args(argv)
    return replace(
        base,
        collect_mainnet=args.collect_mainnet,
        collect_arbitrum=args.collect_arbitrum,
        collect_optimism=args.collect_optimism,
        collect_polygon=args.collect_polygon,
        quote_api_base_url=args.quote_api_base_url.strip(),
        quote_api_key=args.quote_api_key.strip(),
        tolerance_digits=max(0, args.tolerance_digits),
        rate_limit_ms=max(0, args.rate_limit_ms),
        expiry=max(0, args.expiry),
        spot_mainnet=args.spot_mainnet,
        spot_layer2=args.spot_layer2,
        max_doublings=max(1, args.max_doublings),
        max_epochs=max(0, args.max_epochs),
        http_timeout_seconds=max(1.0, args.http_timeout_seconds),
        log_level=str(args.log_level).strip().upper() or "INFO",
    )
