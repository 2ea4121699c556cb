"""partsdesk core services module.

Shared services used across sections:
- Currency rates (cache, database, HTTP rate API)
"""

from .fx_rates import FxRateService, FxRateUnavailableError

__all__ = [
    'FxRateService',
    'FxRateUnavailableError',
]
