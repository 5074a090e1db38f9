"""Bearer tokens linking a request to a durable account.

Tokens are issued by the account service that owns credentials and signed
with the shared ``JWT_SECRET_KEY``. This server only verifies them.
"""

import time
from typing import Optional

import jwt
from flask import current_app

from livequiz import db
from livequiz.models import Account


def create_account_token(account_id: int, expires_in: Optional[int] = None) -> str:
    """Sign a token for ``account_id``. Used by the issuer, the CLI and tests."""
    now = int(time.time())
    lifetime = expires_in if expires_in is not None else current_app.config['JWT_EXPIRES_SEC']
    payload = {'sub': str(account_id), 'iat': now, 'exp': now + lifetime}
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'],
                      algorithm=current_app.config['JWT_ALGORITHM'])


def verify_account_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, current_app.config['JWT_SECRET_KEY'],
                          algorithms=[current_app.config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        current_app.logger.info("[auth] expired account token")
    except jwt.InvalidTokenError:
        current_app.logger.info("[auth] invalid account token")
    return None


def account_from_request(req) -> Optional[Account]:
    header = req.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    payload = verify_account_token(token.strip())
    if payload is None:
        return None
    try:
        account_id = int(payload.get('sub'))
    except (TypeError, ValueError):
        return None
    return db.session.get(Account, account_id)
