"""Access policy evaluator.

Single place where allow/deny decisions are made. Every route guard,
decorator and the activity-log surface go through one of the four
`authorize*` entry points below; nothing else reads role_permissions to
decide access.

Decision order for `authorize`:
    1. admin                                  -> Allow('admin')
    2. key under an admin-only path prefix    -> Deny('admin only')
    3. principal has no role_id               -> Deny('role undetermined')
    4. can_view grant on a matching tab       -> Allow / Deny('no access to this tab')

Repository errors propagate. A failed lookup is never a grant.
"""

import logging
from typing import Optional

from core.access import entity_tabs
from core.access.principal import (
    Principal, Single, resource_key, is_admin,
    AccessDecision, Allow, Deny,
    REASON_ADMIN, REASON_GRANTED, REASON_ROLE_UNDETERMINED, REASON_NO_TAB_ACCESS,
    REASON_ADMIN_ONLY, REASON_NO_PERMISSIONS, REASON_TAB_NOT_FOUND,
)
from core.access.repositories import PermissionRepository, TabRepository, normalize_path
from core.utils.logging_config import log_with_context

logger = logging.getLogger('partsdesk.core.access.policy')

# Reachable by admins only, whatever role_permissions say
ADMIN_ONLY_PREFIXES = ('/users', '/roles', '/role-permissions', '/activity-logs', '/import')


def is_admin_only_path(key: str) -> bool:
    """True when `key` is, or sits under, one of ADMIN_ONLY_PREFIXES."""
    if not key or not key.startswith('/'):
        return False
    path = key.lower().rstrip('/') or '/'
    for prefix in ADMIN_ONLY_PREFIXES:
        if path == prefix or path.startswith(prefix + '/'):
            return True
    return False


class AccessPolicyEvaluator:
    """Evaluates tab-based access for a Principal.

    Repositories are injected so tests can drive the evaluator with mocks.
    """

    def __init__(self, permission_repo: PermissionRepository = None,
                 tab_repo: TabRepository = None):
        self._permissions = permission_repo or PermissionRepository()
        self._tabs = tab_repo or TabRepository()

    def authorize(self, principal: Optional[Principal], key) -> AccessDecision:
        """Can `principal` view the tab named (or pathed) by `key`?"""
        key = resource_key(key)
        if is_admin(principal):
            return Allow(REASON_ADMIN)

        keys = key.keys()
        if any(is_admin_only_path(k) for k in keys):
            return self._deny(principal, REASON_ADMIN_ONLY, keys)

        if principal is None or principal.role_id is None:
            return self._deny(principal, REASON_ROLE_UNDETERMINED, keys)

        if self._permissions.has_tab_access(principal.role_id, keys):
            return Allow(REASON_GRANTED)
        return self._deny(principal, REASON_NO_TAB_ACCESS, keys)

    def authorize_path_prefix(self, principal: Optional[Principal], path: str) -> AccessDecision:
        """Admin-only prefix check alone, used by the app-wide request guard."""
        if is_admin(principal):
            return Allow(REASON_ADMIN)
        if is_admin_only_path(path):
            return self._deny(principal, REASON_ADMIN_ONLY, (path,))
        return Allow(REASON_GRANTED)

    def authorize_snapshot(self, principal: Optional[Principal], tab_path: str) -> AccessDecision:
        """Decide against the tab ids captured in the credential at login."""
        if is_admin(principal):
            return Allow(REASON_ADMIN)
        if principal is None or not principal.permission_set:
            return self._deny(principal, REASON_NO_PERMISSIONS, (tab_path,))

        tab = self._tabs.get_active_by_path(normalize_path(tab_path))
        if not tab:
            return self._deny(principal, REASON_TAB_NOT_FOUND, (tab_path,))
        if tab['id'] in principal.permission_set:
            return Allow(REASON_GRANTED)
        return self._deny(principal, REASON_NO_TAB_ACCESS, (tab_path,))

    def authorize_entity(self, principal: Optional[Principal], entity) -> AccessDecision:
        """Access to records of an entity type, via the tab that governs it.

        Entities without a governing tab are admin-only.
        """
        resolved = entity_tabs.resolve(entity)
        if resolved.tab_path is None:
            if is_admin(principal):
                return Allow(REASON_ADMIN)
            return self._deny(principal, REASON_ADMIN_ONLY, (str(entity),))
        return self.authorize(principal, Single(resolved.tab_path))

    def _deny(self, principal, reason, keys) -> AccessDecision:
        log_with_context(
            logger, logging.WARNING, f'Access denied: {reason}',
            user_id=getattr(principal, 'user_id', None),
            role=getattr(principal, 'role', None),
            role_id=getattr(principal, 'role_id', None),
            resource=','.join(str(k) for k in keys),
        )
        return Deny(reason)
