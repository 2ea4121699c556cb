"""partsdesk core platform module.

Shared infrastructure used by the order desk:
- Configuration, errors and the repository base class
- Identity (bearer tokens) and tab-based access control
- Audit trail (activity logs, order events)
- FX rates
"""
