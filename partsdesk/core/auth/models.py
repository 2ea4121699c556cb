"""partsdesk auth models.

User object handed to Flask-Login by the identity adapter.
"""
from flask_login import UserMixin

from core.access.principal import Principal


class User(UserMixin):
    """Authenticated caller for Flask-Login.

    Wraps the Principal built from the verified credential; access checks
    read `user.principal`, never the raw claims.
    """

    def __init__(self, principal: Principal):
        self.principal = principal
        self.id = principal.user_id
        self.username = principal.username
        self.role_name = principal.role
        self.role_id = principal.role_id

    @property
    def is_admin(self):
        return self.principal.is_admin

    def get_id(self):
        return str(self.id) if self.id is not None else None

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role_name,
            'role_id': self.role_id,
            'is_admin': self.is_admin,
            'permissions': sorted(self.principal.permission_set),
        }
