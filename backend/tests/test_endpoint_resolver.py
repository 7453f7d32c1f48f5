# Overview: Pytest coverage for default source/destination resolution per operation type.

import pytest

from stockledger.extensions import db
from stockledger.models import Location, LOCATION_TYPE_BLOGGER
from stockledger.services.endpoint_resolver import resolve_endpoints
from stockledger.validation import NotFoundError, ValidationError


class TestDefaults:
    """Missing endpoints are filled from the operation type."""

    def test_sale_defaults_destination_to_sold(self, db_session, account_a, locations_a):
        endpoints = resolve_endpoints(account_a.id, "sale", from_location_id=locations_a.sales.id)
        assert endpoints.from_location_id == locations_a.sales.id
        assert endpoints.to_location_id == locations_a.sold.id

    def test_writeoff_defaults_destination_to_scrap(self, db_session, account_a, locations_a):
        endpoints = resolve_endpoints(account_a.id, "writeoff", from_location_id=locations_a.sales.id)
        assert endpoints.to_location_id == locations_a.scrap.id

    def test_sale_return_defaults_both_sides(self, db_session, account_a, locations_a):
        endpoints = resolve_endpoints(account_a.id, "sale_return")
        assert endpoints.from_location_id == locations_a.sold.id
        assert endpoints.to_location_id == locations_a.sales.id

    def test_explicit_destination_is_kept(self, db_session, account_a, locations_a):
        endpoints = resolve_endpoints(
            account_a.id,
            "sale",
            from_location_id=locations_a.sales.id,
            to_location_id=locations_a.promo.id,
        )
        assert endpoints.to_location_id == locations_a.promo.id

    def test_inbound_has_no_defaults(self, db_session, account_a):
        with pytest.raises(ValidationError):
            resolve_endpoints(account_a.id, "inbound")

    def test_sale_without_sold_location_fails(self, db_session, account_a, locations_a):
        locations_a.sold.is_active = False
        db_session.commit()

        with pytest.raises(ValidationError):
            resolve_endpoints(account_a.id, "sale", from_location_id=locations_a.sales.id)


class TestBloggerLocations:
    """Blogger locations are resolved, or created on first shipment."""

    def test_ship_blogger_requires_counterparty(self, db_session, account_a, locations_a):
        with pytest.raises(ValidationError):
            resolve_endpoints(account_a.id, "ship_blogger", from_location_id=locations_a.promo.id)

    def test_ship_blogger_creates_location_once(self, db_session, account_a, locations_a, blogger_a):
        first = resolve_endpoints(
            account_a.id,
            "ship_blogger",
            from_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        )
        second = resolve_endpoints(
            account_a.id,
            "ship_blogger",
            from_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        )

        assert first.to_location_id == second.to_location_id
        tied = db.session.query(Location).filter_by(
            account_id=account_a.id, type=LOCATION_TYPE_BLOGGER, counterparty_id=blogger_a.id
        ).all()
        assert len(tied) == 1
        assert tied[0].name == "Anna Reviews"
        assert tied[0].id != locations_a.blogger.id

    def test_return_blogger_uses_tied_location(self, db_session, account_a, locations_a, blogger_a):
        shipped = resolve_endpoints(
            account_a.id,
            "ship_blogger",
            from_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        )
        returned = resolve_endpoints(
            account_a.id,
            "return_blogger",
            to_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        )
        assert returned.from_location_id == shipped.to_location_id

    def test_return_blogger_falls_back_to_generic_location(self, db_session, account_a, locations_a, blogger_a):
        returned = resolve_endpoints(
            account_a.id,
            "return_blogger",
            to_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        )
        assert returned.from_location_id == locations_a.blogger.id


    def test_return_without_counterparty_prefers_untied_location(self, db_session, account_a, locations_a, blogger_a):
        tied_id = resolve_endpoints(
            account_a.id,
            "ship_blogger",
            from_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        ).to_location_id

        locations_a.blogger.is_active = False
        generic = Location(account_id=account_a.id, name="Bloggers: misc", type=LOCATION_TYPE_BLOGGER)
        db_session.add(generic)
        db_session.commit()
        assert tied_id < generic.id

        returned = resolve_endpoints(account_a.id, "return_blogger", to_location_id=locations_a.promo.id)
        assert returned.from_location_id == generic.id

    def test_return_without_counterparty_falls_back_to_any_blogger_location(
        self, db_session, account_a, locations_a, blogger_a
    ):
        tied_id = resolve_endpoints(
            account_a.id,
            "ship_blogger",
            from_location_id=locations_a.promo.id,
            counterparty_id=blogger_a.id,
        ).to_location_id

        locations_a.blogger.is_active = False
        db_session.commit()

        returned = resolve_endpoints(account_a.id, "return_blogger", to_location_id=locations_a.promo.id)
        assert returned.from_location_id == tied_id


class TestValidation:

    def test_unknown_type(self, db_session, account_a):
        with pytest.raises(ValidationError):
            resolve_endpoints(account_a.id, "teleport")

    def test_transfer_requires_both_sides(self, db_session, account_a, locations_a):
        with pytest.raises(ValidationError):
            resolve_endpoints(account_a.id, "transfer", to_location_id=locations_a.promo.id)

    def test_transfer_to_same_location_rejected(self, db_session, account_a, locations_a):
        with pytest.raises(ValidationError):
            resolve_endpoints(
                account_a.id,
                "transfer",
                from_location_id=locations_a.sales.id,
                to_location_id=locations_a.sales.id,
            )

    def test_foreign_location_is_not_found(self, db_session, account_a, locations_b):
        with pytest.raises(NotFoundError):
            resolve_endpoints(account_a.id, "inbound", to_location_id=locations_b.sales.id)

    def test_unknown_counterparty_is_not_found(self, db_session, account_a, locations_a):
        with pytest.raises(NotFoundError):
            resolve_endpoints(
                account_a.id,
                "ship_blogger",
                from_location_id=locations_a.promo.id,
                counterparty_id=99999,
            )
