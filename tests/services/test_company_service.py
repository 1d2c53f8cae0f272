"""
Tenant setup (ledger_kernel/services/company_service.py).
"""

import pytest

from ledger_kernel.domain.calendar import BasePeriod
from ledger_kernel.exceptions import ConflictError, NotFoundError, ValidationError
from ledger_kernel.models.organization import Platform, UserStatus
from ledger_kernel.services.sequence_service import SequenceService


class TestOrganizations:

    def test_id_is_slug_of_name(self, company_service):
        org = company_service.create_organization("Acme Holdings, Inc.")
        assert org.id == "acme-holdings-inc"
        assert org.full_name == "Acme Holdings, Inc."

    def test_duplicate_slug_conflicts(self, company_service):
        company_service.create_organization("Acme Holdings")
        with pytest.raises(ConflictError) as exc_info:
            company_service.create_organization("ACME holdings")
        assert exc_info.value.constraint == "organizations_pkey"

    def test_name_without_slug_rejected(self, company_service):
        with pytest.raises(ValidationError):
            company_service.create_organization("!!!")


class TestCompanies:

    def test_create_company(self, company, session):
        assert company.base_period is BasePeriod.MONTH
        assert company.platform is Platform.AVISE
        assert company.home_currency == "USD"
        assert company.fiscal_year_start_month == 1
        assert SequenceService(session).current_value(company.id) == 0

    def test_unknown_organization(self, company_service):
        with pytest.raises(NotFoundError) as exc_info:
            company_service.create_company("missing", "Co", "Avise", "Month", "USD")
        assert exc_info.value.entity == "Organization"

    def test_duplicate_name_in_organization(self, company_service, organization, company):
        with pytest.raises(ConflictError):
            company_service.create_company(organization.id, company.name, "Avise", "Month", "USD")

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"home_currency": "ZZZ"}, "home_currency"),
            ({"base_period": "Week"}, "base_period"),
            ({"platform": "Sage"}, "platform"),
            ({"fiscal_year_start_month": 2, "fiscal_year_start_day": 30}, "fiscal_year_start"),
        ],
    )
    def test_invalid_configuration(self, company_service, organization, kwargs, field):
        args = {
            "platform": "Avise",
            "base_period": "Month",
            "home_currency": "USD",
        }
        args.update(kwargs)
        with pytest.raises(ValidationError) as exc_info:
            company_service.create_company(organization.id, "Broken Co", **args)
        assert exc_info.value.field == field

    def test_get_company(self, company_service, company):
        assert company_service.get_company(company.id) == company


class TestUsers:

    def test_email_is_lower_cased(self, user):
        assert user.email == "controller@acme.test"
        assert user.is_admin
        assert user.status is UserStatus.ACCEPTED

    def test_get_user(self, company_service, user):
        assert company_service.get_user(user.id) == user

    def test_default_status_pending(self, company_service, company):
        member = company_service.create_user(company.id, "member@acme.test", "Member")
        assert member.status is UserStatus.PENDING
        assert not member.is_admin

    def test_duplicate_email_conflicts(self, company_service, company, user):
        with pytest.raises(ConflictError) as exc_info:
            company_service.create_user(company.id, "CONTROLLER@acme.test", "Twin")
        assert exc_info.value.constraint == "uq_user_company_email"

    def test_same_email_in_other_company(self, company_service, company, quarterly_company, user):
        other = company_service.create_user(quarterly_company.id, user.email, "Same Person")
        assert other.company_id == quarterly_company.id

    @pytest.mark.parametrize("email", ["", "no-at-sign", "@acme.test", "local@"])
    def test_malformed_email(self, company_service, company, email):
        with pytest.raises(ValidationError):
            company_service.create_user(company.id, email, "Bad Email")
