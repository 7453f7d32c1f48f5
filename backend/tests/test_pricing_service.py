# Overview: Pytest coverage for effective-dated pricing and snapshot recalculation.

from datetime import datetime

import pytest

from stockledger.models import OperationLine, ProductVariant, StockMovement
from stockledger.services import operation_service, pricing_service
from stockledger.time_utils import PRICE_HISTORY_EPOCH
from stockledger.validation import NotFoundError, ValidationError


@pytest.fixture
def history(db_session, account_a, locations_a, variant_a):
    """Inbound on 2020-01-01 and a sale on 2020-03-01, both at price 1000."""
    inbound_id = operation_service.submit_operation(account_a.id, {
        "type": "inbound",
        "occurred_at": "2020-01-01T00:00:00Z",
        "to_location_id": locations_a.sales.id,
        "lines": [{"variant_id": variant_a.id, "qty": 10}],
    })
    sale_id = operation_service.submit_operation(account_a.id, {
        "type": "sale",
        "occurred_at": "2020-03-01T00:00:00Z",
        "from_location_id": locations_a.sales.id,
        "lines": [{"variant_id": variant_a.id, "qty": 2}],
    })
    return {"inbound": inbound_id, "sale": sale_id}


def _line_price(db_session, operation_id):
    return db_session.query(OperationLine).filter_by(operation_id=operation_id).one().unit_price_snapshot


def _movement_prices(db_session, operation_id):
    return {m.unit_price_snapshot for m in db_session.query(StockMovement).filter_by(operation_id=operation_id)}


class TestRepriceVariant:

    def test_only_records_at_or_after_effective_date_change(self, db_session, account_a, variant_a, history):
        result = pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2020-02-01T00:00:00Z")

        assert result["lines_recalculated"] == 1
        assert result["postings_recalculated"] == 2
        assert result["effective_at"] == "2020-02-01T00:00:00Z"

        assert _line_price(db_session, history["sale"]) == 1500
        assert _movement_prices(db_session, history["sale"]) == {1500}
        assert _line_price(db_session, history["inbound"]) == 1000
        assert _movement_prices(db_session, history["inbound"]) == {1000}

    @pytest.mark.parametrize("effective_at", ["2020-02-01T00:00:00Z", "2020-02-01T03:00:00+03:00"])
    def test_operation_at_effective_instant_is_repriced(self, db_session, account_a, locations_a, variant_a, effective_at):
        op_id = operation_service.submit_operation(account_a.id, {
            "type": "transfer",
            "occurred_at": "2020-02-01T00:00:00Z",
            "from_location_id": locations_a.sales.id,
            "to_location_id": locations_a.promo.id,
            "lines": [{"variant_id": variant_a.id, "qty": 1}],
        })

        result = pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, effective_at)

        assert result["effective_at"] == "2020-02-01T00:00:00Z"
        assert result["lines_recalculated"] == 1
        assert result["postings_recalculated"] == 2
        assert _line_price(db_session, op_id) == 1500
        movements = db_session.query(StockMovement).filter_by(operation_id=op_id).all()
        assert [m.unit_price_snapshot for m in movements] == [1500, 1500]

    def test_earlier_reprice_does_not_override_later_entry(self, db_session, account_a, variant_a, history):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2020-02-01T00:00:00Z")
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1200, "2020-01-15T00:00:00Z")

        assert _line_price(db_session, history["sale"]) == 1500
        assert _line_price(db_session, history["inbound"]) == 1000

    def test_cost_snapshots_are_untouched(self, db_session, account_a, variant_a, history):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2019-01-01T00:00:00Z")

        line = db_session.query(OperationLine).filter_by(operation_id=history["sale"]).one()
        assert line.unit_price_snapshot == 1500
        assert line.unit_cost_snapshot == 400

    def test_history_is_seeded_and_cache_refreshed(self, db_session, account_a, variant_a):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2020-02-01T00:00:00Z")

        entries = pricing_service.list_price_history(account_a.id, variant_a.id)
        assert [(e.effective_at, e.unit_price) for e in entries] == [
            (PRICE_HISTORY_EPOCH, 1000),
            (datetime(2020, 2, 1), 1500),
        ]
        assert db_session.get(ProductVariant, variant_a.id).unit_price == 1500
        assert pricing_service.get_price_at(account_a.id, variant_a.id, datetime(2020, 1, 31)) == 1000

    def test_same_instant_overwrites_entry(self, db_session, account_a, variant_a):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2020-02-01T00:00:00Z")
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1600, "2020-02-01T00:00:00Z")

        entries = pricing_service.list_price_history(account_a.id, variant_a.id)
        assert len(entries) == 2
        assert entries[-1].unit_price == 1600

    def test_future_price_leaves_cache_alone(self, db_session, account_a, variant_a):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 2000, "2999-01-01T00:00:00Z")
        assert db_session.get(ProductVariant, variant_a.id).unit_price == 1000

    def test_new_operations_use_effective_price(self, db_session, account_a, locations_a, variant_a, history):
        pricing_service.reprice_variant(account_a.id, variant_a.id, 1500, "2020-02-01T00:00:00Z")

        late_id = operation_service.submit_operation(account_a.id, {
            "type": "sale",
            "occurred_at": "2020-02-10T00:00:00Z",
            "from_location_id": locations_a.sales.id,
            "lines": [{"variant_id": variant_a.id, "qty": 1}],
        })
        early_id = operation_service.submit_operation(account_a.id, {
            "type": "sale",
            "occurred_at": "2020-01-10T00:00:00Z",
            "from_location_id": locations_a.sales.id,
            "lines": [{"variant_id": variant_a.id, "qty": 1}],
        })
        override_id = operation_service.submit_operation(account_a.id, {
            "type": "sale",
            "occurred_at": "2020-02-10T00:00:00Z",
            "from_location_id": locations_a.sales.id,
            "lines": [{"variant_id": variant_a.id, "qty": 1, "unit_price_snapshot": 999}],
        })

        assert _line_price(db_session, late_id) == 1500
        assert _line_price(db_session, early_id) == 1000
        assert _line_price(db_session, override_id) == 999

    def test_negative_price_rejected(self, db_session, account_a, variant_a):
        with pytest.raises(ValidationError):
            pricing_service.reprice_variant(account_a.id, variant_a.id, -1, "2020-02-01T00:00:00Z")

    def test_missing_effective_at_rejected(self, db_session, account_a, variant_a):
        with pytest.raises(ValidationError):
            pricing_service.reprice_variant(account_a.id, variant_a.id, 100, None)

    def test_foreign_variant_not_found(self, db_session, account_a, variant_b):
        with pytest.raises(NotFoundError):
            pricing_service.reprice_variant(account_a.id, variant_b.id, 100, "2020-02-01T00:00:00Z")


class TestRepriceModel:

    def test_all_variants_repriced(self, db_session, account_a, model_a, variant_a, marked_variant_a):
        result = pricing_service.reprice_model(account_a.id, model_a.id, 1800, "2020-02-01T00:00:00Z")

        assert result["variants_repriced"] == 2
        assert db_session.get(ProductVariant, variant_a.id).unit_price == 1800
        assert db_session.get(ProductVariant, marked_variant_a.id).unit_price == 1800

    def test_unknown_model_not_found(self, db_session, account_a):
        with pytest.raises(NotFoundError):
            pricing_service.reprice_model(account_a.id, 99999, 1800, "2020-02-01T00:00:00Z")
