"""
Dimensions, line tagging and counterparty sync
(ledger_kernel/services/dimension_service.py).
"""

import pytest
from sqlalchemy import select

from ledger_kernel.domain.dtos import JournalLineInput
from ledger_kernel.exceptions import ConflictError, DuplicateDimensionError, ValidationError
from ledger_kernel.models.dimensions import CUSTOMER_DIMENSION, VENDOR_DIMENSION, DimensionSource
from ledger_kernel.models.party import Customer, Vendor


@pytest.fixture
def department(dimension_service, company):
    dimension = dimension_service.create_dimension(company.id, "Department")
    return dimension, {
        name: dimension_service.add_value(dimension.id, name)
        for name in ("Sales", "Engineering")
    }


@pytest.fixture
def entry(post_entry, chart):
    return post_entry([(chart.cash.id, 100), (chart.sales.id, -100)])


class TestDimensions:

    def test_create_dimension(self, department):
        dimension, values = department
        assert dimension.source is DimensionSource.AVISE
        assert values["Sales"].dimension_name == "Department"
        assert values["Sales"].active

    def test_duplicate_active_dimension(self, dimension_service, company, department):
        with pytest.raises(ConflictError):
            dimension_service.create_dimension(company.id, "Department")

    def test_same_name_other_source(self, dimension_service, company, department):
        imported = dimension_service.create_dimension(company.id, "Department", source="QBO")
        assert imported.source is DimensionSource.QBO

    def test_duplicate_active_value(self, dimension_service, department):
        dimension, _ = department
        with pytest.raises(ConflictError):
            dimension_service.add_value(dimension.id, "Sales")

    def test_deactivate_value(self, dimension_service, department):
        dimension, values = department
        inactive = dimension_service.deactivate_value(values["Sales"].id)
        assert not inactive.active
        assert [v.value for v in dimension_service.list_values(dimension.id, active_only=True)] == [
            "Engineering"
        ]


class TestTagLine:

    def test_tag_and_retag_same_value(self, dimension_service, department, entry):
        dimension, values = department
        line_id = entry.lines[0].id

        tag = dimension_service.tag_line(line_id, dimension.id, values["Sales"].id)
        again = dimension_service.tag_line(line_id, dimension.id, values["Sales"].id)

        assert tag.id == again.id
        assert (tag.name, tag.value) == ("Department", "Sales")

    def test_second_value_of_same_dimension_rejected(self, dimension_service, department, entry):
        dimension, values = department
        line_id = entry.lines[0].id
        dimension_service.tag_line(line_id, dimension.id, values["Sales"].id)

        with pytest.raises(DuplicateDimensionError) as exc_info:
            dimension_service.tag_line(line_id, dimension.id, values["Engineering"].id)
        assert exc_info.value.existing_value_id == values["Sales"].id
        assert exc_info.value.requested_value_id == values["Engineering"].id

    def test_value_from_other_dimension(self, dimension_service, company, department, entry):
        dimension, _ = department
        location = dimension_service.create_dimension(company.id, "Location")
        berlin = dimension_service.add_value(location.id, "Berlin")
        with pytest.raises(ValidationError):
            dimension_service.tag_line(entry.lines[0].id, dimension.id, berlin.id)

    def test_inactive_value_rejected(self, dimension_service, department, entry):
        dimension, values = department
        dimension_service.deactivate_value(values["Sales"].id)
        with pytest.raises(ValidationError):
            dimension_service.tag_line(entry.lines[0].id, dimension.id, values["Sales"].id)

    def test_tags_requested_at_entry_creation(self, journal_service, company, user, chart, department):
        _, values = department
        created = journal_service.create_entry(
            company.id,
            "JournalEntry",
            [
                JournalLineInput(100, chart.rent.id, dimension_value_ids=(values["Engineering"].id,)),
                JournalLineInput(-100, chart.cash.id),
            ],
            user.id,
        )
        assert created.lines[0].dimension_value_ids == (values["Engineering"].id,)
        assert created.lines[1].dimension_value_ids == ()

    def test_conflicting_tags_at_creation(self, journal_service, company, user, chart, department):
        _, values = department
        with pytest.raises(DuplicateDimensionError):
            journal_service.create_entry(
                company.id,
                "JournalEntry",
                [
                    JournalLineInput(
                        100, chart.rent.id,
                        dimension_value_ids=(values["Sales"].id, values["Engineering"].id),
                    ),
                    JournalLineInput(-100, chart.cash.id),
                ],
                user.id,
            )


class TestCounterpartySync:

    def test_creates_and_flips(self, dimension_service, company, session):
        vendors = dimension_service.create_dimension(company.id, VENDOR_DIMENSION)
        customers = dimension_service.create_dimension(company.id, CUSTOMER_DIMENSION)
        acme = dimension_service.add_value(vendors.id, "Acme Supplies")
        dimension_service.add_value(vendors.id, "Bolt Logistics")
        dimension_service.add_value(customers.id, "Zephyr Retail")

        first = dimension_service.sync_counterparties(company.id)
        assert (first.vendors_created, first.customers_created) == (2, 1)

        dimension_service.deactivate_value(acme.id)
        second = dimension_service.sync_counterparties(company.id)
        assert second.vendors_updated == 1
        assert second.vendors_created == 0

        rows = {
            v.display_name: v.active
            for v in session.execute(select(Vendor).where(Vendor.company_id == company.id)).scalars()
        }
        assert rows == {"Acme Supplies": False, "Bolt Logistics": True}
        assert session.execute(select(Customer.display_name)).scalars().all() == ["Zephyr Retail"]

    def test_sync_is_idempotent(self, dimension_service, company):
        vendors = dimension_service.create_dimension(company.id, VENDOR_DIMENSION)
        dimension_service.add_value(vendors.id, "Acme Supplies")
        dimension_service.sync_counterparties(company.id)

        assert dimension_service.sync_counterparties(company.id).changed == 0

    def test_any_active_value_keeps_party_active(self, dimension_service, company):
        vendors = dimension_service.create_dimension(company.id, VENDOR_DIMENSION)
        old = dimension_service.add_value(vendors.id, "Acme Supplies")
        dimension_service.deactivate_value(old.id)
        dimension_service.add_value(vendors.id, "Acme Supplies")

        result = dimension_service.sync_counterparties(company.id)
        assert result.vendors_created == 1
