# Overview: Pytest coverage for mark code validation and unit status tracking.

import pytest

from stockledger.models import (
    MarkCode,
    Operation,
    OperationLine,
    StockMovement,
    MARKING_NOT_HANDLED_TAG,
)
from stockledger.services import mark_code_service, operation_service
from stockledger.validation import NotFoundError, ValidationError


class TestCodeHelpers:

    def test_validate_codes_count_must_match_qty(self):
        with pytest.raises(ValidationError, match="count"):
            mark_code_service.validate_codes(["A", "B"], 3)

    def test_validate_codes_rejects_duplicates(self):
        with pytest.raises(ValidationError, match="unique"):
            mark_code_service.validate_codes(["A", "A"], 2)

    def test_normalize_codes_strips_and_rejects_blank(self):
        assert mark_code_service.normalize_codes([" A1 ", "B2"]) == ["A1", "B2"]
        with pytest.raises(ValidationError):
            mark_code_service.normalize_codes(["A1", "  "])
        with pytest.raises(ValidationError):
            mark_code_service.normalize_codes("A1")

    @pytest.mark.parametrize("op_type,expected", [
        ("ship_blogger", "at_blogger"),
        ("return_blogger", "in_stock"),
        ("sale", "sold"),
        ("writeoff", "written_off"),
        ("inbound", "in_stock"),
        ("transfer", "in_stock"),
    ])
    def test_resolve_transition_status(self, op_type, expected):
        status, location_id = mark_code_service.resolve_transition(op_type, 1, 2)
        assert status == expected
        assert location_id == 2

    def test_resolve_transition_falls_back_to_source(self):
        assert mark_code_service.resolve_transition("adjustment", 5, None) == ("in_stock", 5)

    def test_deferred_tag_appended_once(self):
        once = mark_code_service.tag_deferred_note("box damaged")
        assert once == f"box damaged {MARKING_NOT_HANDLED_TAG}"
        assert mark_code_service.tag_deferred_note(once) == once
        assert mark_code_service.tag_deferred_note(None) == MARKING_NOT_HANDLED_TAG


class TestMarkedOperations:

    def _receive(self, account, locations, variant, codes):
        return operation_service.submit_operation(account.id, {
            "type": "inbound",
            "occurred_at": "2020-01-01T10:00:00Z",
            "to_location_id": locations.promo.id,
            "lines": [{"variant_id": variant.id, "qty": len(codes), "mark_codes": codes}],
        })

    def test_inbound_creates_one_record_per_code(self, db_session, account_a, locations_a, marked_variant_a):
        op_id = self._receive(account_a, locations_a, marked_variant_a, ["MC-1", "MC-2", "MC-3"])

        records = db_session.query(MarkCode).filter_by(account_id=account_a.id).order_by(MarkCode.code).all()
        assert [r.code for r in records] == ["MC-1", "MC-2", "MC-3"]
        for record in records:
            assert record.status == "in_stock"
            assert record.current_location_id == locations_a.promo.id
            assert record.variant_id == marked_variant_a.id
            assert record.last_operation_id == op_id

    def test_ship_blogger_moves_units_to_blogger(self, db_session, account_a, locations_a, marked_variant_a, blogger_a):
        self._receive(account_a, locations_a, marked_variant_a, ["MC-1", "MC-2"])
        op_id = operation_service.submit_operation(account_a.id, {
            "type": "ship_blogger",
            "occurred_at": "2020-01-02T10:00:00Z",
            "from_location_id": locations_a.promo.id,
            "counterparty_id": blogger_a.id,
            "lines": [{"variant_id": marked_variant_a.id, "qty": 1, "mark_codes": ["MC-2"]}],
        })
        operation = db_session.get(Operation, op_id)

        shipped = mark_code_service.get_mark_code(account_a.id, "MC-2")
        kept = mark_code_service.get_mark_code(account_a.id, "MC-1")
        assert shipped.status == "at_blogger"
        assert shipped.current_location_id == operation.to_location_id
        assert kept.status == "in_stock"

    def test_mismatched_count_rejects_whole_operation(self, db_session, account_a, locations_a, marked_variant_a):
        with pytest.raises(ValidationError):
            operation_service.submit_operation(account_a.id, {
                "type": "inbound",
                "occurred_at": "2020-01-01T10:00:00Z",
                "to_location_id": locations_a.promo.id,
                "lines": [{"variant_id": marked_variant_a.id, "qty": 3, "mark_codes": ["MC-1", "MC-2"]}],
            })

        assert db_session.query(Operation).count() == 0
        assert db_session.query(OperationLine).count() == 0
        assert db_session.query(StockMovement).count() == 0
        assert db_session.query(MarkCode).count() == 0

    def test_duplicate_codes_across_lines_rejected(self, db_session, account_a, locations_a, marked_variant_a):
        with pytest.raises(ValidationError):
            operation_service.submit_operation(account_a.id, {
                "type": "inbound",
                "to_location_id": locations_a.promo.id,
                "lines": [
                    {"variant_id": marked_variant_a.id, "qty": 1, "mark_codes": ["MC-1"]},
                    {"variant_id": marked_variant_a.id, "qty": 1, "mark_codes": ["MC-1"]},
                ],
            })
        assert db_session.query(Operation).count() == 0

    def test_deferred_line_skips_codes_and_tags_note(self, db_session, account_a, locations_a, marked_variant_a):
        op_id = operation_service.submit_operation(account_a.id, {
            "type": "inbound",
            "to_location_id": locations_a.promo.id,
            "lines": [{
                "variant_id": marked_variant_a.id,
                "qty": 2,
                "line_note": "scan later",
                "marking_not_handled": True,
            }],
        })

        line = db_session.query(OperationLine).filter_by(operation_id=op_id).one()
        assert line.marking_not_handled is True
        assert line.line_note == f"scan later {MARKING_NOT_HANDLED_TAG}"
        assert db_session.query(MarkCode).count() == 0
        assert db_session.query(StockMovement).filter_by(operation_id=op_id).count() == 1

    def test_codes_on_unmarked_variant_are_ignored(self, db_session, account_a, locations_a, variant_a):
        op_id = operation_service.submit_operation(account_a.id, {
            "type": "inbound",
            "to_location_id": locations_a.sales.id,
            "lines": [{"variant_id": variant_a.id, "qty": 1, "mark_codes": ["X", "Y"]}],
        })

        line = db_session.query(OperationLine).filter_by(operation_id=op_id).one()
        assert line.mark_codes is None
        assert db_session.query(MarkCode).count() == 0

    def test_list_and_get(self, db_session, account_a, locations_a, marked_variant_a):
        self._receive(account_a, locations_a, marked_variant_a, ["MC-1", "MC-2"])

        assert len(mark_code_service.list_mark_codes(account_a.id, status="in_stock")) == 2
        assert mark_code_service.list_mark_codes(account_a.id, status="sold") == []
        with pytest.raises(ValidationError):
            mark_code_service.list_mark_codes(account_a.id, status="lost")
        with pytest.raises(NotFoundError):
            mark_code_service.get_mark_code(account_a.id, "MC-404")
