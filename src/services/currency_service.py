"""
Currency Service
Exchange-rate conversion and the list of selectable currencies
"""

import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import httpx

from src.config.settings import settings
from src.utils.logger import setup_logger

logger = setup_logger()


@dataclass(frozen=True)
class CurrencyInfo:
    """A currency as offered in the company signup form"""
    code: str
    name: str
    symbol: str
    country: str


DEFAULT_CURRENCIES = [
    CurrencyInfo("AUD", "Australian Dollar", "A$", "Australia"),
    CurrencyInfo("CAD", "Canadian Dollar", "C$", "Canada"),
    CurrencyInfo("EUR", "Euro", "€", "European Union"),
    CurrencyInfo("GBP", "British Pound", "£", "United Kingdom"),
    CurrencyInfo("INR", "Indian Rupee", "₹", "India"),
    CurrencyInfo("JPY", "Japanese Yen", "¥", "Japan"),
    CurrencyInfo("USD", "US Dollar", "$", "United States"),
]


class CurrencyService:
    """
    CurrencyConverter backed by a public exchange-rate API

    Rates are cached per instance for `cache_ttl` seconds; the countries list
    is cached for the lifetime of the instance.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rates_url: str = None,
        countries_url: str = None,
        timeout: float = None,
        cache_ttl: int = None,
    ):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.client = client or httpx.AsyncClient(timeout=self.timeout)
        self.rates_url = (rates_url or settings.EXCHANGE_RATE_API_URL).rstrip("/")
        self.countries_url = countries_url or settings.COUNTRIES_API_URL
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.RATE_CACHE_TTL_SECONDS
        self._rates: Dict[str, Tuple[float, Dict[str, float]]] = {}
        self._currencies: Optional[List[CurrencyInfo]] = None

    async def aclose(self) -> None:
        await self.client.aclose()

    async def get_rates(self, base: str) -> Dict[str, float]:
        """
        Fetch exchange rates for `base`

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses
            ValueError: If the response has no usable rates
        """
        base = base.upper()
        cached = self._rates.get(base)
        if cached and time.monotonic() - cached[0] < self.cache_ttl:
            return cached[1]

        response = await self.client.get(f"{self.rates_url}/{base}", timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise ValueError(f"No rates returned for {base}")

        self._rates[base] = (time.monotonic(), rates)
        return rates

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        """
        Convert an amount between currencies

        Falls back to the original amount when the rate cannot be obtained.
        """
        if from_currency.upper() == to_currency.upper():
            return amount

        try:
            rates = await self.get_rates(from_currency)
            rate = rates.get(to_currency.upper())
            if rate is None:
                raise ValueError(f"No rate found for {to_currency}")
            return round(amount * float(rate), 2)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.error(f"Currency conversion {from_currency}->{to_currency} failed: {e}")
            return amount

    async def supported_codes(self) -> Optional[Set[str]]:
        """Currency codes known to the rate provider, or None when it is unreachable"""
        try:
            rates = await self.get_rates("USD")
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning(f"Could not load supported currencies: {e}")
            return None
        return set(rates) | {"USD"}

    async def list_currencies(self) -> List[CurrencyInfo]:
        """Currencies of all countries, one entry per code, sorted by code"""
        if self._currencies is not None:
            return self._currencies

        try:
            response = await self.client.get(self.countries_url, timeout=self.timeout)
            response.raise_for_status()
            by_code = _currencies_by_code(response.json())
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Failed to fetch currencies: {e}")
            return list(DEFAULT_CURRENCIES)
        if not by_code:
            return list(DEFAULT_CURRENCIES)

        self._currencies = sorted(by_code.values(), key=lambda c: c.code)
        return self._currencies


def _currencies_by_code(countries) -> Dict[str, CurrencyInfo]:
    """First currency entry per code from a list of country records"""
    if not isinstance(countries, list):
        raise ValueError("Countries payload is not a list")

    by_code: Dict[str, CurrencyInfo] = {}
    for country in countries:
        for code, info in (country.get("currencies") or {}).items():
            if code in by_code:
                continue
            by_code[code] = CurrencyInfo(
                code=code,
                name=info.get("name", code),
                symbol=info.get("symbol") or code,
                country=country.get("name", {}).get("common", ""),
            )
    return by_code
