"""
FX Rates Service

Exchange rates for offer pricing, in layers:
    1. in-process RateCache (TTL, per service instance)
    2. fx_rates table (latest row per pair, trusted up to db_max_age)
    3. HTTP rate API (frankfurter by default, any URL with {base}/{quote})

When the API is down, a stale DB row and then a stale cache entry are
returned with source 'db_stale_fallback' / 'cache_stale_fallback'.

The cache belongs to the service instance; build one FxRateService and pass
it to whoever needs rates (routes, scheduler).
"""

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from core.base_repository import BaseRepository
from core.config import config
from core.errors import InternalError

logger = logging.getLogger('partsdesk.core.services.fx_rates')


class FxRateUnavailableError(InternalError):
    """No rate from the API and nothing cached to fall back on."""


def norm_code(value) -> Optional[str]:
    """ISO 4217 code in upper case, or None."""
    if not value:
        return None
    code = str(value).strip().upper()
    return code if len(code) == 3 and code.isalpha() else None


class RateCache:
    """Thread-safe TTL cache of {rate, fetched_at, source} entries.

    Entries keep their own timestamp; get_stale() ignores it for fallbacks.
    """

    def __init__(self, ttl: int, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key, max_age: Optional[float] = None) -> Optional[dict]:
        """Entry younger than max_age seconds (default: the TTL)."""
        if max_age is None:
            max_age = self.ttl
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or self._clock() - entry['ts'] >= max_age:
            return None
        return entry['value']

    def get_stale(self, key) -> Optional[dict]:
        """Entry regardless of age."""
        with self._lock:
            entry = self._entries.get(key)
        return entry['value'] if entry else None

    def set(self, key, value: dict):
        with self._lock:
            self._entries[key] = {'value': value, 'ts': self._clock()}

    def clear(self):
        with self._lock:
            self._entries.clear()


class FxRateRepository(BaseRepository):

    def get_latest(self, base: str, quote: str) -> Optional[dict]:
        return self.query_one('''
            SELECT rate, as_of
            FROM fx_rates
            WHERE base_currency = %s AND quote_currency = %s
            ORDER BY as_of DESC
            LIMIT 1
        ''', (base, quote))

    def save(self, base: str, quote: str, rate: float, as_of: datetime) -> None:
        self.execute('''
            INSERT INTO fx_rates (base_currency, quote_currency, rate, as_of)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (base_currency, quote_currency)
            DO UPDATE SET rate = EXCLUDED.rate, as_of = EXCLUDED.as_of
        ''', (base, quote, rate, as_of))


def _extract_rate(data: dict, quote: str) -> Optional[float]:
    """Rate from the response shapes of the common free FX APIs."""
    candidates = (
        (data.get('info') or {}).get('rate'),
        data.get('result'),
        data.get('conversion_rate'),
        (data.get('rates') or {}).get(quote),
    )
    for value in candidates:
        if value is None:
            continue
        try:
            rate = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(rate) and rate > 0:
            return rate
    return None


class FxRateService:

    def __init__(self, cache: RateCache = None, repo: FxRateRepository = None,
                 http=requests, api_url: str = None, timeout: int = None,
                 db_max_age: int = None):
        self.cache = cache or RateCache(config.FX_CACHE_TTL)
        self._repo = repo or FxRateRepository()
        self._http = http
        self._api_url = api_url or config.FX_API_URL
        self._timeout = timeout or config.FX_API_TIMEOUT
        self._db_max_age = db_max_age or config.FX_DB_MAX_AGE

    def get_rate(self, base, quote, force_refresh: bool = False) -> dict:
        """{rate, fetched_at, source} for one pair.

        Raises ValueError on bad currency codes and FxRateUnavailableError when
        every layer comes up empty.
        """
        base_code, quote_code = norm_code(base), norm_code(quote)
        if not base_code or not quote_code:
            raise ValueError('Invalid currency codes')
        if base_code == quote_code:
            return {'rate': 1.0, 'fetched_at': _now_iso(), 'source': 'same'}

        key = f'{base_code}->{quote_code}'
        if not force_refresh:
            cached = self.cache.get(key)
            if cached:
                return cached

        from_db = None
        if not force_refresh:
            from_db = self._load_from_db(base_code, quote_code)
            if from_db and from_db['age'] <= self._db_max_age:
                entry = from_db['entry']
                self.cache.set(key, entry)
                return entry

        try:
            entry = self._fetch_from_api(base_code, quote_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f'FX API failed for {key}: {e}')
            if from_db:
                entry = dict(from_db['entry'], source='db_stale_fallback')
                self.cache.set(key, entry)
                return entry
            stale = self.cache.get_stale(key)
            if stale:
                return dict(stale, source='cache_stale_fallback')
            raise FxRateUnavailableError(f'Could not fetch exchange rate {base_code}/{quote_code}')

        self.cache.set(key, entry)
        self._save_to_db(base_code, quote_code, entry)
        return entry

    def convert(self, amount, base, quote, force_refresh: bool = False) -> dict:
        """Rate info plus `value` = amount * rate (None when amount is None)."""
        result = dict(self.get_rate(base, quote, force_refresh=force_refresh))
        result['value'] = None if amount is None else float(amount) * result['rate']
        return result

    def refresh_pairs(self, pairs) -> int:
        """Force-refresh each (base, quote); returns how many succeeded."""
        refreshed = 0
        for base, quote in pairs:
            try:
                self.get_rate(base, quote, force_refresh=True)
                refreshed += 1
            except (ValueError, FxRateUnavailableError) as e:
                logger.warning(f'FX refresh skipped for {base}/{quote}: {e}')
        return refreshed

    # ---- layers ----

    def _load_from_db(self, base, quote) -> Optional[dict]:
        try:
            row = self._repo.get_latest(base, quote)
        except Exception as e:
            logger.warning(f'FX db lookup skipped: {e}')
            return None
        if not row:
            return None
        as_of = row['as_of']
        if isinstance(as_of, str):
            as_of = datetime.fromisoformat(as_of)
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - as_of).total_seconds()
        return {
            'age': age,
            'entry': {'rate': float(row['rate']), 'fetched_at': as_of.isoformat(), 'source': 'db'},
        }

    def _save_to_db(self, base, quote, entry):
        try:
            self._repo.save(base, quote, entry['rate'], datetime.fromisoformat(entry['fetched_at']))
        except Exception as e:
            logger.warning(f'FX db save skipped: {e}')

    def _fetch_from_api(self, base, quote) -> dict:
        url = self._api_url.replace('{base}', base).replace('{quote}', quote)
        response = self._http.get(url, timeout=self._timeout)
        response.raise_for_status()
        rate = _extract_rate(response.json() or {}, quote)
        if rate is None:
            raise ValueError('FX API returned no rate')
        return {'rate': rate, 'fetched_at': _now_iso(), 'source': 'api'}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
