"""Identity adapter.

Credentials arrive as `Authorization: Bearer <token>`, where the token is an
HS256 JWT signed with JWT_SECRET (the app secret key when unset):

    {"id": 7, "username": "anna", "role": "buyer", "role_id": 3,
     "permissions": [2, 5], "is_admin": false, "exp": 1767225600}

Issuing tokens belongs to the identity provider; `issue_token` exists for
tooling and tests.
"""
import logging
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, g, request

from core.access.principal import Principal
from core.auth.models import User
from core.config import config

logger = logging.getLogger('partsdesk.core.auth.identity')

ALGORITHM = 'HS256'

MISSING_CREDENTIAL = 'Authentication required'
INVALID_CREDENTIAL = 'Invalid or expired token'


def _secret(secret_key=None) -> str:
    return secret_key or config.JWT_SECRET or current_app.secret_key


def issue_token(claims: dict, secret_key=None, expires_in=None) -> str:
    """Sign a claim set; `exp` is now + expires_in (default TOKEN_MAX_AGE) seconds."""
    if expires_in is None:
        expires_in = config.TOKEN_MAX_AGE
    payload = dict(claims)
    payload['exp'] = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    return jwt.encode(payload, _secret(secret_key), algorithm=ALGORITHM)


def verify_token(token: str, secret_key=None) -> Principal | None:
    """Return the Principal for a valid token, None for a bad or expired one."""
    try:
        claims = jwt.decode(token, _secret(secret_key), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info('Rejected expired token')
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f'Rejected token: {e}')
        return None
    if not isinstance(claims, dict) or claims.get('id') is None:
        return None
    return Principal.from_claims(claims)


def bearer_token() -> str | None:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_user_from_request(req):
    """Flask-Login request_loader.

    The Principal is built once here; `g.auth_error` records why a request
    stayed anonymous so the 401 body can say so.
    """
    token = bearer_token()
    if token is None:
        g.auth_error = MISSING_CREDENTIAL
        return None
    principal = verify_token(token)
    if principal is None:
        g.auth_error = INVALID_CREDENTIAL
        return None
    return User(principal)


def auth_error_message() -> str:
    return g.get('auth_error', MISSING_CREDENTIAL)
