"""Principal, resource keys and access decisions.

A Principal is the verified identity of the caller, built once per request
by the identity adapter. Admin status is derived here and nowhere else.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Sequence, Tuple, Union


ADMIN_ROLE_SLUG = 'admin'
ADMIN_ROLE_ID = 1


def _to_role_id(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_permission_set(values) -> FrozenSet[int]:
    result = set()
    for v in values or ():
        try:
            result.add(int(v))
        except (TypeError, ValueError):
            continue
    return frozenset(result)


@dataclass(frozen=True)
class Principal:
    """Verified caller identity.

    permission_set holds tab ids snapshotted into the credential at login.
    """
    user_id: Optional[int] = None
    role: str = ''
    role_id: Optional[int] = None
    permission_set: FrozenSet[int] = field(default_factory=frozenset)
    is_admin_flag: bool = False
    username: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict) -> 'Principal':
        """Build a principal from a verified claim set."""
        return cls(
            user_id=_to_role_id(claims.get('id')),
            role=str(claims.get('role') or '').strip(),
            role_id=_to_role_id(claims.get('role_id')),
            permission_set=_to_permission_set(claims.get('permissions')),
            is_admin_flag=bool(claims.get('is_admin', False)),
            username=claims.get('username'),
        )

    @property
    def role_slug(self) -> str:
        return (self.role or '').strip().lower()

    @property
    def is_admin(self) -> bool:
        return is_admin(self)


def is_admin(principal: Optional[Principal]) -> bool:
    """True when ANY of the three admin signals is present.

    role slug 'admin' (any case), role_id 1, or the explicit flag.
    """
    if principal is None:
        return False
    return (
        principal.role_slug == ADMIN_ROLE_SLUG
        or principal.role_id == ADMIN_ROLE_ID
        or bool(principal.is_admin_flag)
    )


# ============== Resource keys ==============

@dataclass(frozen=True)
class Single:
    """One tab name or tab path."""
    key: str

    def keys(self) -> Tuple[str, ...]:
        key = (self.key or '').strip()
        return (key,) if key else ()


@dataclass(frozen=True)
class AnyOf:
    """Several acceptable tab names/paths; any match grants."""
    options: Tuple[str, ...]

    def keys(self) -> Tuple[str, ...]:
        seen = []
        for opt in self.options:
            key = (opt or '').strip()
            if key and key not in seen:
                seen.append(key)
        return tuple(seen)


ResourceKey = Union[Single, AnyOf]


def resource_key(value: Union[str, Sequence[str], Single, AnyOf]) -> ResourceKey:
    """Normalize a string or a list of strings into a ResourceKey."""
    if isinstance(value, (Single, AnyOf)):
        return value
    if isinstance(value, str):
        return Single(value)
    return AnyOf(tuple(str(v) for v in value if v is not None))


# ============== Decisions ==============

REASON_ADMIN = 'admin'
REASON_GRANTED = 'granted'
REASON_ROLE_UNDETERMINED = 'role undetermined'
REASON_NO_TAB_ACCESS = 'no access to this tab'
REASON_ADMIN_ONLY = 'admin only'
REASON_NO_PERMISSIONS = 'no permissions in token'
REASON_TAB_NOT_FOUND = 'tab not found or inactive'


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self):
        return self.allowed


def Allow(reason: str = REASON_GRANTED) -> AccessDecision:
    return AccessDecision(True, reason)


def Deny(reason: str) -> AccessDecision:
    return AccessDecision(False, reason)
