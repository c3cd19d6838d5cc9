# backend/portfolio_ledger/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements MarketDataProvider on top of the yfinance library:
- Quotes from `Ticker.fast_info` (last price and previous close)
- Batched quotes through `yf.Tickers`, one request per valuation
- Company profile (sector, industry) from `Ticker.info`
- Daily closes from `Ticker.history`

Every outbound call runs inside the retry wrapper inherited from the base
class and behind a shared CircuitBreaker, so a Yahoo outage costs one
fast CircuitBreakerOpen per request once the breaker has tripped.

Limitations:
- Rate limits exist but are not documented
- Quotes may be delayed 15-20 minutes
"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import yfinance as yf

from portfolio_ledger.services.circuit_breaker import CircuitBreaker
from portfolio_ledger.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from portfolio_ledger.services.market_data.base import (
    CompanyProfile,
    MarketDataProvider,
    PriceBar,
    Quote,
)

logger = logging.getLogger(__name__)

_EIGHT_PLACES = Decimal("0.00000001")


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Configuration:
        timeout: API request timeout in seconds (default: 10)
        circuit_breaker: Shared breaker; a private one is created if omitted

    Example:
        provider = YahooFinanceProvider(timeout=15)
        quotes = provider.get_multiple_quotes(["AAPL", "MSFT"])
        print(quotes["AAPL"].price)
    """

    MAX_BATCH_SIZE: int = 100

    def __init__(self, timeout: int = 10, circuit_breaker: CircuitBreaker | None = None) -> None:
        self._timeout = timeout
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name="yahoo-finance",
            excluded_exceptions=(TickerNotFoundError,),
        )
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def is_available(self) -> bool:
        return not self._circuit_breaker.is_open

    # =========================================================================
    # QUOTES
    # =========================================================================

    def get_quote(self, symbol: str) -> Quote:
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> Quote:
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote for {symbol}")

        with self._circuit_breaker:
            try:
                quote = self._quote_from_ticker(symbol, yf.Ticker(symbol))
            except Exception as e:
                raise self._map_error(symbol, e) from e

        if quote is None:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return quote

    def get_multiple_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """
        Fetch quotes for many symbols via yf.Tickers.

        Symbols without a usable price are left out of the result; a
        failure of the whole request raises.
        """
        normalized = sorted({s.strip().upper() for s in symbols if s and s.strip()})
        if not normalized:
            return {}

        quotes: dict[str, Quote] = {}
        for i in range(0, len(normalized), self.MAX_BATCH_SIZE):
            chunk = normalized[i:i + self.MAX_BATCH_SIZE]
            quotes.update(self._execute_with_retry(self._fetch_quote_chunk, chunk))
        return quotes

    def _fetch_quote_chunk(self, symbols: list[str]) -> dict[str, Quote]:
        result: dict[str, Quote] = {}

        with self._circuit_breaker:
            try:
                yf_tickers = yf.Tickers(" ".join(symbols))
            except Exception as e:
                raise self._map_error(",".join(symbols), e) from e

            errors: list[Exception] = []
            for symbol in symbols:
                yf_ticker = yf_tickers.tickers.get(symbol)
                if yf_ticker is None:
                    continue
                try:
                    quote = self._quote_from_ticker(symbol, yf_ticker)
                except Exception as e:
                    logger.warning(f"No quote for {symbol}: {e}")
                    errors.append(e)
                    continue
                if quote is not None:
                    result[symbol] = quote

            # Every symbol raising means the request failed, not the symbols
            if errors and len(errors) == len(symbols):
                raise self._map_error(",".join(symbols), errors[0]) from errors[0]

        logger.debug(f"Fetched {len(result)}/{len(symbols)} quotes")
        return result

    def _quote_from_ticker(self, symbol: str, yf_ticker: Any) -> Quote | None:
        fast_info = yf_ticker.fast_info
        price = self._to_decimal(getattr(fast_info, "last_price", None))
        if price is None or price <= 0:
            return None

        previous_close = self._to_decimal(getattr(fast_info, "previous_close", None))
        change = Decimal("0")
        change_percent = Decimal("0")
        if previous_close is not None and previous_close > 0:
            change = price - previous_close
            change_percent = (change / previous_close * 100).quantize(_EIGHT_PLACES)

        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            previous_close=previous_close,
        )

    # =========================================================================
    # COMPANY PROFILE
    # =========================================================================

    def get_company_profile(self, symbol: str) -> CompanyProfile:
        return self._execute_with_retry(self._fetch_company_profile, symbol)

    def _fetch_company_profile(self, symbol: str) -> CompanyProfile:
        symbol = symbol.strip().upper()

        with self._circuit_breaker:
            try:
                info = yf.Ticker(symbol).info
            except Exception as e:
                raise self._map_error(symbol, e) from e

            if not self._is_valid_ticker_info(info):
                raise TickerNotFoundError(ticker=symbol, provider=self.name)

        return CompanyProfile(
            symbol=symbol,
            name=info.get("longName") or info.get("shortName"),
            sector=info.get("sector") or None,
            industry=info.get("industry") or None,
        )

    # =========================================================================
    # HISTORICAL DATA
    # =========================================================================

    def get_historical_data(self, symbol: str, start_date: date, end_date: date) -> list[PriceBar]:
        return self._execute_with_retry(self._fetch_historical_data, symbol, start_date, end_date)

    def _fetch_historical_data(self, symbol: str, start_date: date, end_date: date) -> list[PriceBar]:
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching history for {symbol}: {start_date} to {end_date}")

        with self._circuit_breaker:
            try:
                # Yahoo's end date is exclusive
                df = yf.Ticker(symbol).history(
                    start=start_date.isoformat(),
                    end=(end_date + timedelta(days=1)).isoformat(),
                    interval="1d",
                    auto_adjust=False,
                )
            except Exception as e:
                raise self._map_error(symbol, e) from e

        if df is None or df.empty:
            logger.warning(f"No price data for {symbol} between {start_date} and {end_date}")
            return []

        bars = []
        for idx, row in df.iterrows():
            close = self._to_decimal(row.get("Close"))
            if close is None or close <= 0:
                continue
            bar_date = idx.date() if hasattr(idx, "date") else idx
            bars.append(PriceBar(date=bar_date, close=close))
        return bars

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _map_error(self, symbol: str, error: Exception) -> Exception:
        """Translate a yfinance/requests failure into the provider error taxonomy."""
        if isinstance(error, (TickerNotFoundError, RateLimitError, ProviderUnavailableError)):
            return error

        error_str = str(error).lower()
        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(ticker=symbol, provider=self.name)
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(_EIGHT_PLACES)
        except (TypeError, ValueError, ArithmeticError):
            return None

    @staticmethod
    def _is_valid_ticker_info(info: dict | None) -> bool:
        """Yahoo returns an info dict even for unknown tickers; require a name or price."""
        if not info:
            return False
        return bool(
            info.get("regularMarketPrice")
            or info.get("shortName")
            or info.get("longName")
        )
