"""
partsdesk configuration

Environment-driven settings for the web app, identity adapter and the FX
rate service. Pool sizing lives next to the pool in database.py.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


DEFAULT_FX_API_URL = 'https://api.frankfurter.app/latest?from={base}&to={quote}'


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() == 'true'


def _parse_pairs(raw: str) -> List[Tuple[str, str]]:
    """Parse 'USD:EUR,CNY:EUR' into [('USD', 'EUR'), ('CNY', 'EUR')]."""
    pairs = []
    for chunk in (raw or '').split(','):
        base, sep, quote = chunk.strip().partition(':')
        if sep and base.strip() and quote.strip():
            pairs.append((base.strip().upper(), quote.strip().upper()))
    return pairs


@dataclass
class AppConfig:
    """Application settings."""

    SECRET_KEY: Optional[str] = None
    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = 'INFO'

    # Identity: HS256 bearer tokens. JWT_SECRET falls back to SECRET_KEY;
    # TOKEN_MAX_AGE is the lifetime of tokens from issue_token (15 minutes)
    JWT_SECRET: Optional[str] = None
    TOKEN_MAX_AGE: int = 900

    # FX rates
    FX_API_URL: str = DEFAULT_FX_API_URL
    FX_API_TIMEOUT: int = 8
    FX_CACHE_TTL: int = 6 * 60 * 60      # seconds
    FX_DB_MAX_AGE: int = 6 * 60 * 60     # seconds
    FX_REFRESH_PAIRS: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load configuration from environment variables."""
        fx_ttl = int(os.environ.get('FX_CACHE_TTL', str(6 * 60 * 60)))
        db_max_age_min = os.environ.get('FX_DB_MAX_AGE_MIN')
        try:
            fx_db_max_age = int(float(db_max_age_min) * 60) if db_max_age_min else fx_ttl
        except ValueError:
            fx_db_max_age = fx_ttl
        if fx_db_max_age <= 0:
            fx_db_max_age = fx_ttl

        return cls(
            SECRET_KEY=os.environ.get('FLASK_SECRET_KEY', os.environ.get('SECRET_KEY')),
            DEBUG=_env_bool('FLASK_DEBUG'),
            TESTING=bool(os.environ.get('TESTING')),
            LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),
            JWT_SECRET=os.environ.get('JWT_SECRET'),
            TOKEN_MAX_AGE=int(os.environ.get('TOKEN_MAX_AGE', '900')),
            FX_API_URL=os.environ.get('FX_API_URL', DEFAULT_FX_API_URL),
            FX_API_TIMEOUT=int(os.environ.get('FX_API_TIMEOUT', '8')),
            FX_CACHE_TTL=fx_ttl,
            FX_DB_MAX_AGE=fx_db_max_age,
            FX_REFRESH_PAIRS=_parse_pairs(os.environ.get('FX_REFRESH_PAIRS', '')),
        )


config = AppConfig.from_env()
