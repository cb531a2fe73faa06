"""ARS/USD rate updater: averages public ARS quotes and pushes them to the oracle."""
from __future__ import annotations

import asyncio
import logging
import ssl

import aiohttp
import certifi

from .config import PriceSourcesConfig
from .constants import ORACLE_DECIMALS
from .contracts.oracle import ArsUsdOracle

logger = logging.getLogger(__name__)


async def fetch_ars_quotes(sources: PriceSourcesConfig) -> list[float]:
    """Fetch ARS-per-USD quotes from Bluelytics (blue average) and Binance (USDT/ARS).

    Sources that fail or return a non-positive quote are skipped.
    """
    quotes: list[float] = []

    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)
    timeout = aiohttp.ClientTimeout(total=sources.timeout)

    async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
        blue = await _get_json(session, sources.bluelytics_url, "Bluelytics")
        if blue is not None:
            value = float(blue.get("blue", {}).get("value_avg", 0) or 0)
            if value > 0:
                logger.info("Bluelytics blue avg: %.2f", value)
                quotes.append(value)

        ticker = await _get_json(session, sources.binance_url, "Binance")
        if ticker is not None:
            value = float(ticker.get("price", 0) or 0)
            if value > 0:
                logger.info("Binance USDT/ARS: %.2f", value)
                quotes.append(value)

    return quotes


async def _get_json(session: aiohttp.ClientSession, url: str, source: str) -> dict | None:
    try:
        async with session.get(url) as response:
            if response.status != 200:
                logger.error("Error fetching %s quote: HTTP %s", source, response.status)
                return None
            return await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error("Error fetching %s quote: %s", source, e)
        return None


def compute_scaled_rate(quotes: list[float], decimals: int = ORACLE_DECIMALS) -> int:
    """Mean ARS per USD, inverted to USD per ARS and scaled to `decimals`."""
    if not quotes:
        raise ValueError("No valid ARS quotes")
    mean = sum(quotes) / len(quotes)
    if mean <= 0:
        raise ValueError("Mean ARS quote must be positive")
    scaled = round((1 / mean) * 10**decimals)
    if scaled <= 0:
        raise ValueError(f"ARS quote {mean} is too large for {decimals} decimals")
    logger.info("Mean ARS per USD %.4f -> scaled USD per ARS %d", mean, scaled)
    return scaled


async def update_oracle_price(
    oracle: ArsUsdOracle, caller: str, sources: PriceSourcesConfig
) -> int:
    """Fetch quotes, compute the scaled rate and push it to the oracle."""
    quotes = await fetch_ars_quotes(sources)
    rate = compute_scaled_rate(quotes, oracle.decimals)
    oracle.update_price(caller, rate)
    return rate
