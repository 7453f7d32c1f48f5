from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class Account(db.Model):
    """
    Owning account for every ledger record.

    OWNERSHIP: All directory, catalog and ledger rows carry account_id.
    Reads and writes are always filtered by the caller's account; a row of
    another account behaves exactly like a missing row.

    WRITE SERIALIZATION:
    version_id is an optimistic lock column. Every ledger mutation touches
    last_ledger_write_at inside its unit of work, so two concurrent writers on
    the same account cannot both commit: the loser gets StaleDataError and is
    retried from scratch by run_with_retry. Different accounts never contend.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("api_token_hash", name="uq_accounts_api_token_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # SHA-256 of the bearer token; plaintext is shown once at creation
    api_token_hash = db.Column(db.String(64), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    last_ledger_write_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Account id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "last_ledger_write_at": to_utc_z(self.last_ledger_write_at),
            "created_at": to_utc_z(self.created_at),
        }
