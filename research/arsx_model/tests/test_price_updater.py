"""ARS quote fetching, rate scaling and oracle updates."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from arsx_model.src.config import PriceSourcesConfig
from arsx_model.src.contracts.access_manager import AccessManager, Role
from arsx_model.src.contracts.oracle import ArsUsdOracle
from arsx_model.src.errors import NotPriceUpdaterError
from arsx_model.src.price_updater import (
    compute_scaled_rate,
    fetch_ars_quotes,
    update_oracle_price,
)

from conftest import ADMIN, ALICE, START


@pytest.fixture()
def sources() -> PriceSourcesConfig:
    return PriceSourcesConfig(
        bluelytics_url="https://bluelytics.example.com/v2/latest",
        binance_url="https://binance.example.com/api/v3/ticker/price",
        timeout=5,
    )


def _make_response(status: int, data: dict | None = None) -> AsyncMock:
    response = AsyncMock()
    response.status = status
    response.json = AsyncMock(return_value=data)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _make_session(get: MagicMock) -> AsyncMock:
    session = AsyncMock()
    session.get = get
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


class TestComputeScaledRate:
    def test_single_quote(self) -> None:
        assert compute_scaled_rate([1200.0]) == 83_333

    def test_mean_of_quotes(self) -> None:
        assert compute_scaled_rate([1200.0, 1300.0]) == 80_000

    def test_custom_decimals(self) -> None:
        assert compute_scaled_rate([1000.0], decimals=18) == 10**15

    def test_empty_quotes_raise(self) -> None:
        with pytest.raises(ValueError):
            compute_scaled_rate([])

    def test_quote_too_large_for_decimals(self) -> None:
        with pytest.raises(ValueError):
            compute_scaled_rate([1e12], decimals=2)


class TestFetchArsQuotes:
    @pytest.mark.asyncio
    async def test_parses_both_sources(self, sources: PriceSourcesConfig) -> None:
        get = MagicMock(
            side_effect=[
                _make_response(200, {"blue": {"value_avg": 1250.5}, "oficial": {"value_avg": 980}}),
                _make_response(200, {"symbol": "USDTARS", "price": "1262.30"}),
            ]
        )
        session = _make_session(get)

        with patch("arsx_model.src.price_updater.aiohttp.ClientSession", return_value=session):
            with patch("arsx_model.src.price_updater.aiohttp.TCPConnector"):
                quotes = await fetch_ars_quotes(sources)

        assert quotes == [pytest.approx(1250.5), pytest.approx(1262.3)]
        assert get.call_args_list[0].args[0] == sources.bluelytics_url
        assert get.call_args_list[1].args[0] == sources.binance_url

    @pytest.mark.asyncio
    async def test_skips_http_errors(self, sources: PriceSourcesConfig) -> None:
        get = MagicMock(
            side_effect=[
                _make_response(500),
                _make_response(200, {"price": "1262.30"}),
            ]
        )
        session = _make_session(get)

        with patch("arsx_model.src.price_updater.aiohttp.ClientSession", return_value=session):
            with patch("arsx_model.src.price_updater.aiohttp.TCPConnector"):
                quotes = await fetch_ars_quotes(sources)

        assert quotes == [pytest.approx(1262.3)]

    @pytest.mark.asyncio
    async def test_skips_network_errors_and_bad_quotes(self, sources: PriceSourcesConfig) -> None:
        get = MagicMock(
            side_effect=[
                aiohttp.ClientConnectionError("connection refused"),
                _make_response(200, {"price": "0"}),
            ]
        )
        session = _make_session(get)

        with patch("arsx_model.src.price_updater.aiohttp.ClientSession", return_value=session):
            with patch("arsx_model.src.price_updater.aiohttp.TCPConnector"):
                quotes = await fetch_ars_quotes(sources)

        assert quotes == []


class TestUpdateOraclePrice:
    @pytest.fixture()
    def oracle(self, chain) -> ArsUsdOracle:
        access_manager = AccessManager(chain, ADMIN)
        access_manager.grant_role(ADMIN, Role.PRICE_UPDATER, ADMIN)
        return ArsUsdOracle(chain, access_manager, initial_rate=100_000)

    @pytest.mark.asyncio
    async def test_pushes_scaled_mean(self, oracle: ArsUsdOracle, sources: PriceSourcesConfig) -> None:
        with patch(
            "arsx_model.src.price_updater.fetch_ars_quotes",
            AsyncMock(return_value=[1200.0, 1300.0]),
        ):
            rate = await update_oracle_price(oracle, ADMIN, sources)

        assert rate == 80_000
        assert oracle.latest_data() == (80_000, START)

    @pytest.mark.asyncio
    async def test_requires_price_updater(self, oracle: ArsUsdOracle, sources: PriceSourcesConfig) -> None:
        with patch(
            "arsx_model.src.price_updater.fetch_ars_quotes",
            AsyncMock(return_value=[1200.0]),
        ):
            with pytest.raises(NotPriceUpdaterError):
                await update_oracle_price(oracle, ALICE, sources)

        assert oracle.latest_data()[0] == 100_000

    @pytest.mark.asyncio
    async def test_no_quotes_leaves_oracle_untouched(
        self, oracle: ArsUsdOracle, sources: PriceSourcesConfig
    ) -> None:
        with patch("arsx_model.src.price_updater.fetch_ars_quotes", AsyncMock(return_value=[])):
            with pytest.raises(ValueError):
                await update_oracle_price(oracle, ADMIN, sources)

        assert oracle.latest_data()[0] == 100_000
