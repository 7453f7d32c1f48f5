# Overview: Pytest coverage for per-account write serialization and retry behavior.

"""
Concurrency Tests

Ledger writes on one account are serialized by bumping Account.version_id
inside every unit of work. These tests verify that:
1. Every write bumps the account version
2. run_with_retry re-runs a unit on StaleDataError/OperationalError only
3. Concurrent writers on one account all succeed and lose no postings
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Account, Location, Operation, ProductModel, ProductVariant
from stockledger.services import account_service, directory_service, inventory_service, operation_service
from stockledger.services.concurrency import run_with_retry
from stockledger.validation import NotFoundError, ValidationError


class TestVersionBump:

    def test_each_write_bumps_account_version(self, db_session, account_a, locations_a, variant_a):
        before = db_session.get(Account, account_a.id).version_id

        for _ in range(3):
            operation_service.submit_operation(account_a.id, {
                "type": "inbound",
                "to_location_id": locations_a.sales.id,
                "lines": [{"variant_id": variant_a.id, "qty": 1}],
            })

        db_session.expire_all()
        assert db_session.get(Account, account_a.id).version_id == before + 3

    def test_failed_write_leaves_version_alone(self, db_session, account_a, locations_a):
        before = db_session.get(Account, account_a.id).version_id

        with pytest.raises(NotFoundError):
            operation_service.submit_operation(account_a.id, {
                "type": "inbound",
                "to_location_id": locations_a.sales.id,
                "lines": [{"variant_id": 99999, "qty": 1}],
            })

        db_session.expire_all()
        assert db_session.get(Account, account_a.id).version_id == before


class TestRunWithRetry:

    def test_retries_stale_version(self, db_session, account_a):
        calls = []

        def unit():
            calls.append(1)
            account = db_session.get(Account, account_a.id)
            if len(calls) == 1:
                # Concurrent writer bumps the version underneath this session
                db_session.connection().execute(
                    Account.__table__.update()
                    .where(Account.__table__.c.id == account_a.id)
                    .values(version_id=Account.__table__.c.version_id + 1)
                )
            account.name = "Account A renamed"
            db_session.flush()
            db_session.commit()
            return len(calls)

        assert run_with_retry(unit, attempts=3, backoff_base=0) == 2
        db_session.expire_all()
        assert db_session.get(Account, account_a.id).name == "Account A renamed"

    def test_retries_operational_error(self, db_session):
        calls = []

        def unit():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("UPDATE accounts", {}, Exception("database is locked"))
            return "done"

        assert run_with_retry(unit, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, db_session):
        calls = []

        def unit():
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(StaleDataError):
            run_with_retry(unit, attempts=2, backoff_base=0)
        assert len(calls) == 2

    def test_business_errors_are_not_retried(self, db_session):
        calls = []

        def unit():
            calls.append(1)
            raise ValidationError("qty must be > 0")

        with pytest.raises(ValidationError):
            run_with_retry(unit, attempts=5, backoff_base=0)
        assert len(calls) == 1


@pytest.fixture
def file_app(tmp_path):
    """Separate app on a file-backed SQLite database shared by several threads."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'LEDGER_RETRY_ATTEMPTS': 10,
    })

    with app.app_context():
        db.create_all()
        account, _ = account_service.create_account("Busy shop")
        directory_service.ensure_default_locations(account.id)
        model = ProductModel(account_id=account.id, name="Tee")
        db.session.add(model)
        db.session.flush()
        variant = ProductVariant(account_id=account.id, model_id=model.id, sku="TEE-1", unit_price=500)
        db.session.add(variant)
        db.session.commit()

        location = db.session.query(Location).filter_by(account_id=account.id, type="sales").one()
        app.ledger_ids = {"account": account.id, "variant": variant.id, "location": location.id}

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


class TestConcurrentWriters:

    def test_parallel_submits_on_one_account(self, file_app):
        ids = file_app.ledger_ids
        threads_count = 4
        per_thread = 10
        errors = []

        def worker():
            with file_app.app_context():
                for _ in range(per_thread):
                    try:
                        operation_service.submit_operation(ids["account"], {
                            "type": "inbound",
                            "to_location_id": ids["location"],
                            "lines": [{"variant_id": ids["variant"], "qty": 1}],
                        })
                    except Exception as exc:
                        errors.append(exc)
                db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []

        with file_app.app_context():
            total = threads_count * per_thread
            assert db.session.query(Operation).filter_by(account_id=ids["account"]).count() == total
            assert inventory_service.get_quantity_on_hand(ids["account"], ids["variant"], ids["location"]) == total
            assert db.session.get(Account, ids["account"]).version_id >= 1 + total
