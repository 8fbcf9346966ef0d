from __future__ import annotations

import io
import logging
import os
import unittest
from dataclasses import replace
from typing import Any
from unittest.mock import AsyncMock, patch

from slippage_collector.quoting import NETWORKS, Quote, QuoteStatusError
from slippage_collector.runtime import AppSettings, SlippageCollector, parse_settings, run_collection
from slippage_collector.search import SearchResult, SlippageResult, Spot

ETHER = 10**18
DEPTH = 10_000 * ETHER


def _result(network: str, *, from_base: bool, from_amount: int, to_amount: int) -> SearchResult:
    chain = NETWORKS[network]
    from_token, to_token = chain.token_order(from_base)
    quote = Quote(network, from_amount, from_token, to_amount, to_token)
    spot = Spot(network=chain, from_base=from_base, quote=quote, ratio=quote.ratio)
    return SearchResult(spot=spot, slip=SlippageResult(ratio=quote.ratio, quote=quote))


class _MarketClient:
    """Stands in for the HTTP client; answers like the aggregator API."""

    def __init__(self, *, fail_on_quote: bool = False) -> None:
        self.fail_on_quote = fail_on_quote
        self.calls: list[tuple[int, str]] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def request(self, chain_id: int, method: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        self.calls.append((chain_id, method))
        if method == "liquidity-sources":
            return {"protocols": [{"id": "UNISWAP_V3"}, {"id": "ROCKET_POOL"}]}
        if self.fail_on_quote:
            raise QuoteStatusError("quote returned 500: boom", url=f"/{chain_id}/quote", status=500)
        amount = int(params["amount"])
        return {
            "fromToken": {"address": params["fromTokenAddress"]},
            "fromTokenAmount": str(amount),
            "toToken": {"address": params["toTokenAddress"]},
            "toTokenAmount": str(amount - amount * amount // DEPTH),
        }


def _settings(**overrides: Any) -> AppSettings:
    with patch.dict(os.environ, {}, clear=True):
        base = AppSettings.from_env()
    return replace(base, **overrides)


class SlippageCollectorTests(unittest.IsolatedAsyncioTestCase):
    async def test_emits_labeled_datapoints_for_both_directions(self) -> None:
        search = AsyncMock()
        search.find_one_percent_slip.side_effect = [
            _result("mainnet", from_base=True, from_amount=110 * ETHER, to_amount=100 * ETHER),
            _result("mainnet", from_base=False, from_amount=100 * ETHER, to_amount=108 * ETHER),
        ]
        output = io.StringIO()
        collector = SlippageCollector(
            logger=logging.getLogger("test.collector"),
            search=search,
            output=output,
            clock=lambda: 1_700_000_000.75,
        )

        datapoints = await collector.run([NETWORKS["mainnet"]])

        self.assertEqual(
            output.getvalue().splitlines(),
            [
                "ETH-to-rETH mainnet:",
                f"1700000000,{110 * ETHER}",
                "rETH-to-ETH mainnet:",
                f"1700000000,{108 * ETHER}",
            ],
        )
        self.assertEqual([point.amount for point in datapoints], [110 * ETHER, 108 * ETHER])
        directions = [call.args[1] for call in search.find_one_percent_slip.await_args_list]
        self.assertEqual(directions, [True, False])

    async def test_run_collection_processes_enabled_networks_in_order(self) -> None:
        client = _MarketClient()
        output = io.StringIO()
        settings = _settings(collect_mainnet=True, collect_arbitrum=True, collect_optimism=False)

        datapoints = await run_collection(
            settings=settings,
            logger=logging.getLogger("test.collector"),
            output=output,
            client=client,
        )

        lines = output.getvalue().splitlines()
        self.assertEqual(lines[0], "ETH-to-rETH mainnet:")
        self.assertEqual(lines[2], "rETH-to-ETH mainnet:")
        self.assertEqual(lines[4], "ETH-to-rETH arbitrum:")
        self.assertEqual(lines[6], "rETH-to-ETH arbitrum:")
        self.assertEqual(len(datapoints), 4)
        chain_ids = [chain_id for chain_id, _ in client.calls]
        self.assertEqual(set(chain_ids), {1, 42161})
        self.assertLess(chain_ids.index(1), chain_ids.index(42161))
        self.assertEqual(client.calls.count((1, "liquidity-sources")), 1)
        self.assertTrue(client.connected)
        self.assertTrue(client.closed)

    async def test_quote_failure_aborts_run_and_closes_client(self) -> None:
        client = _MarketClient(fail_on_quote=True)
        output = io.StringIO()

        with self.assertRaises(QuoteStatusError):
            await run_collection(
                settings=_settings(),
                logger=logging.getLogger("test.collector"),
                output=output,
                client=client,
            )

        self.assertEqual(output.getvalue(), "")
        self.assertTrue(client.closed)


class SettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = _settings()

        self.assertEqual(settings.enabled_networks(), ["mainnet", "arbitrum", "optimism"])
        self.assertEqual(settings.quote_api_base_url, "https://api.1inch.io/v5.0")
        self.assertEqual(settings.tolerance_digits, 2)
        self.assertEqual(settings.rate_limit_ms, 1000)
        self.assertEqual(settings.expiry, 10)
        self.assertEqual(settings.spot_mainnet_wei, 10 * ETHER)
        self.assertEqual(settings.spot_layer2_wei, ETHER)
        self.assertEqual(settings.max_epochs, 0)

    def test_env_overrides(self) -> None:
        env = {
            "COLLECT_MAINNET": "false",
            "COLLECT_POLYGON": "1",
            "TOLERANCE_DIGITS": "4",
            "RATE_LIMIT_MS": "250",
            "SPOT_LAYER2_ETH": "0.5",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = AppSettings.from_env()

        self.assertEqual(settings.enabled_networks(), ["arbitrum", "optimism", "polygon"])
        self.assertEqual(settings.tolerance_digits, 4)
        self.assertEqual(settings.rate_limit_ms, 250)
        self.assertEqual(settings.spot_layer2_wei, ETHER // 2)

    def test_command_line_overrides_defaults(self) -> None:
        settings = parse_settings(
            [
                "--no-mainnet",
                "--no-optimism",
                "--polygon",
                "--tolerance",
                "3",
                "--rate-limit",
                "500",
                "--expiry",
                "20",
                "--spot-mainnet",
                "25",
                "--quote-api",
                "https://quotes.example/v5.2",
                "--max-epochs",
                "7",
            ],
            defaults=_settings(),
        )

        self.assertEqual(settings.enabled_networks(), ["arbitrum", "polygon"])
        self.assertEqual(settings.tolerance_digits, 3)
        self.assertEqual(settings.rate_limit_ms, 500)
        self.assertEqual(settings.expiry, 20)
        self.assertEqual(settings.spot_mainnet_wei, 25 * ETHER)
        self.assertEqual(settings.quote_api_base_url, "https://quotes.example/v5.2")
        self.assertEqual(settings.max_epochs, 7)

    def test_invalid_spot_amount_is_rejected(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                parse_settings(["--spot-layer2", "0.0000000000000000001"], defaults=_settings())


if __name__ == "__main__":
    unittest.main()
