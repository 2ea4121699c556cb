"""Access repositories package."""
from .tab_repository import TabRepository, normalize_path
from .permission_repository import PermissionRepository, role_slug

__all__ = ['TabRepository', 'PermissionRepository', 'normalize_path', 'role_slug']
