"""
Exchange Gateway - Market Cache.

============================================================
PURPOSE
============================================================
Per-adapter cache of market and currency metadata.

- Loads lazily, once, unless reload is forced
- Concurrent first callers share one load (asyncio.Lock)
- A failed load leaves the previous state (empty on first load)
- Duplicate symbols: first market wins, the rest are logged

============================================================
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .currency import CurrencyCodeMapper
from .errors import BadSymbol
from .types import Currency, Market


logger = logging.getLogger(__name__)

MarketLoader = Callable[[], Awaitable[List[Market]]]
CurrencyLoader = Callable[[], Awaitable[List[Currency]]]


class MarketCache:
    """
    Market and currency metadata for one adapter instance.
    """

    def __init__(
        self,
        exchange_id: str,
        mapper: CurrencyCodeMapper,
        fetch_markets: MarketLoader,
        fetch_currencies: Optional[CurrencyLoader] = None,
    ):
        self.exchange_id = exchange_id
        self._mapper = mapper
        self._fetch_markets = fetch_markets
        self._fetch_currencies = fetch_currencies
        self._lock = asyncio.Lock()

        self._markets: Dict[str, Market] = {}
        self._markets_by_id: Dict[str, Market] = {}
        self._currencies: Dict[str, Currency] = {}
        self._loaded = False

    # --------------------------------------------------------
    # LOADING
    # --------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self, reload: bool = False) -> Dict[str, Market]:
        """
        Load markets (and currencies) unless already loaded.

        Args:
            reload: Force a fresh fetch

        Returns:
            symbol -> Market
        """
        if self._loaded and not reload:
            return self._markets

        async with self._lock:
            # Another caller may have finished the load while we waited
            if self._loaded and not reload:
                return self._markets

            markets = await self._fetch_markets()
            if self._fetch_currencies is not None:
                currencies = await self._fetch_currencies()
            else:
                currencies = None

            self._set(markets, currencies)
            logger.info(
                f"[{self.exchange_id}] Loaded {len(self._markets)} markets, "
                f"{len(self._currencies)} currencies"
            )
            return self._markets

    async def ensure_loaded(self) -> Dict[str, Market]:
        return await self.load(reload=False)

    def _set(self, markets: List[Market], currencies: Optional[List[Currency]]) -> None:
        by_symbol: Dict[str, Market] = {}
        by_id: Dict[str, Market] = {}
        for market in markets:
            if market.symbol in by_symbol:
                logger.warning(
                    f"[{self.exchange_id}] Duplicate symbol {market.symbol} "
                    f"(ids {by_symbol[market.symbol].id}, {market.id}), keeping first"
                )
                continue
            by_symbol[market.symbol] = market
            by_id[market.id] = market

        if currencies is None:
            currencies = self._derive_currencies(by_symbol.values())

        self._markets = by_symbol
        self._markets_by_id = by_id
        self._currencies = {c.code: c for c in currencies}
        self._loaded = True

    @staticmethod
    def _derive_currencies(markets) -> List[Currency]:
        found: Dict[str, Currency] = {}
        for market in markets:
            for code, native in ((market.base, market.base_id), (market.quote, market.quote_id)):
                if code not in found:
                    found[code] = Currency(id=native, code=code)
        return [found[code] for code in sorted(found)]

    # --------------------------------------------------------
    # LOOKUPS
    # --------------------------------------------------------

    @property
    def markets(self) -> Dict[str, Market]:
        return dict(self._markets)

    @property
    def markets_by_id(self) -> Dict[str, Market]:
        return dict(self._markets_by_id)

    @property
    def symbols(self) -> List[str]:
        return sorted(self._markets)

    @property
    def ids(self) -> List[str]:
        return sorted(self._markets_by_id)

    @property
    def currencies(self) -> Dict[str, Currency]:
        return dict(self._currencies)

    def market(self, symbol: str) -> Market:
        """
        Raises:
            BadSymbol: Unknown symbol or markets not loaded
        """
        if not self._loaded:
            raise BadSymbol("markets not loaded", exchange_id=self.exchange_id)
        try:
            return self._markets[symbol]
        except KeyError:
            raise BadSymbol(
                f"does not have market symbol {symbol}",
                exchange_id=self.exchange_id,
                context={"symbol": symbol},
            )

    def market_id(self, symbol: str) -> str:
        return self.market(symbol).id

    def market_by_id(self, market_id: str) -> Optional[Market]:
        return self._markets_by_id.get(market_id)

    def currency(self, code: str) -> Currency:
        """Cached currency, or a synthetic one built from the mapper."""
        if code in self._currencies:
            return self._currencies[code]
        return Currency(id=self._mapper.to_native(code), code=code)
