"""
Account identity and ownership helpers.

Every ledger entry point receives an explicit account_id. This module turns a
bearer token into that id and provides the per-account write lock used by all
mutations.
"""
from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass

from ..extensions import db
from ..models import Account
from ..validation import AccessDeniedError, ValidationError
from .concurrency import lock_for_update
from stockledger.time_utils import utcnow


@dataclass
class AccountContext:
    """Resolved caller identity for one request."""
    account: Account
    account_id: int


def generate_token() -> str:
    """64-character hex token (32 bytes of entropy). Never stored in plaintext."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are high-entropy, so a fast one-way hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_account(name: str) -> tuple[Account, str]:
    """
    Create an account and its API token.

    Returns (account, plaintext_token). The caller commits.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    token = generate_token()
    account = Account(name=name, api_token_hash=hash_token(token), is_active=True)
    db.session.add(account)
    db.session.flush()
    return account, token


def rotate_token(account_id: int) -> str:
    account = require_account(account_id)
    token = generate_token()
    account.api_token_hash = hash_token(token)
    db.session.flush()
    return token


def resolve_token(token: str | None) -> AccountContext | None:
    """Map a bearer token to an active account, or None."""
    if not token:
        return None
    account = db.session.query(Account).filter_by(api_token_hash=hash_token(token)).first()
    if account is None or not account.is_active:
        return None
    return AccountContext(account=account, account_id=account.id)


def require_account(account_id: int | None) -> Account:
    if account_id is None:
        raise AccessDeniedError("Not authenticated")
    account = db.session.get(Account, account_id)
    if account is None or not account.is_active:
        raise AccessDeniedError("Not authenticated")
    return account


def lock_account_for_write(account_id: int | None) -> Account:
    """
    Serialize ledger writes per account.

    Takes a row lock on the account (honored by PostgreSQL) and touches
    last_ledger_write_at, which bumps version_id. A concurrent writer on the
    same account then fails its flush with StaleDataError and is retried.
    """
    if account_id is None:
        raise AccessDeniedError("Not authenticated")
    account = lock_for_update(db.session.query(Account).filter_by(id=account_id)).populate_existing().first()
    if account is None or not account.is_active:
        raise AccessDeniedError("Not authenticated")
    account.last_ledger_write_at = utcnow()
    db.session.flush()
    return account
