"""
CompanyService -- tenant setup: organizations, companies and users.

Responsibility:
    Creates the tenant rows every other service hangs off: organizations
    (slug-identified), their companies with accounting configuration, and
    company users who author entries and tasks.  Creating a company also
    creates its display-id counter row.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Organization ids are stable slugs of the full name.
    - (organization_id, name) unique per company.
    - fiscal_year_start_month/day name a day that exists every year.
    - home_currency is an ISO 4217 code.
    - (company_id, email) unique per user.

Failure modes:
    - NotFoundError: unknown organization or company.
    - ValidationError: bad currency, fiscal-year start, platform, base
      period, or email.
    - ConflictError: duplicate organization id, company name or user email.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.calendar import BasePeriod, validate_fiscal_year_start
from ledger_kernel.domain.chart import coerce_enum
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.currency import validate_currency
from ledger_kernel.domain.dtos import CompanyInfo, OrganizationInfo, UserInfo
from ledger_kernel.domain.ids import IdGenerator, slugify
from ledger_kernel.exceptions import ConflictError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.organization import (
    Company,
    Organization,
    Platform,
    User,
    UserStatus,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.company")


class CompanyService(BaseService):
    """
    Service for tenant setup.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT authenticate or authorize users.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        super().__init__(session, clock, id_generator)
        self._sequences = SequenceService(session)

    def create_organization(self, full_name: str, org_id: str | None = None) -> OrganizationInfo:
        """
        Create an organization identified by a slug of its name.

        Raises:
            ValidationError: If no slug can be derived.
            ConflictError: If the id is taken.
        """
        try:
            slug = slugify(org_id or full_name)
        except ValueError as exc:
            raise ValidationError(str(exc), field="full_name") from None

        if self.session.get(Organization, slug) is not None:
            raise ConflictError(
                f"Organization {slug} already exists", constraint="organizations_pkey"
            )

        now = self._clock.now_utc()
        org = Organization(id=slug, full_name=full_name, created_at=now, updated_at=now)
        self.session.add(org)
        self._flush(f"organization {slug}")

        logger.info("organization_created", extra={"organization_id": slug})
        return OrganizationInfo.from_model(org)

    def create_company(
        self,
        organization_id: str,
        name: str,
        platform: Platform | str,
        base_period: BasePeriod | str,
        home_currency: str,
        timezone: str = "UTC",
        fiscal_year_start_month: int = 1,
        fiscal_year_start_day: int = 1,
        multi_currency_enabled: bool = False,
    ) -> CompanyInfo:
        """
        Create a company under an organization, with its display-id counter.

        Raises:
            NotFoundError: Unknown organization.
            ValidationError: Bad configuration value.
            ConflictError: Name already used in the organization.
        """
        self._require(Organization, organization_id)

        name = (name or "").strip()
        if not name:
            raise ValidationError("Company name is required", field="name")
        if not (timezone or "").strip():
            raise ValidationError("Timezone is required", field="timezone")
        currency = validate_currency(home_currency, field="home_currency")
        platform = coerce_enum(Platform, platform, "platform")
        base_period = coerce_enum(BasePeriod, base_period, "base_period")
        try:
            validate_fiscal_year_start(fiscal_year_start_month, fiscal_year_start_day)
        except ValueError as exc:
            raise ValidationError(str(exc), field="fiscal_year_start") from None

        duplicate = self.session.execute(
            select(Company.id).where(
                Company.organization_id == organization_id,
                Company.name == name,
            )
        ).first()
        if duplicate is not None:
            raise ConflictError(
                f"Company {name!r} already exists in organization {organization_id}",
                constraint="uq_company_org_name",
            )

        now = self._clock.now_utc()
        company = Company(
            id=self._ids.new_id(),
            organization_id=organization_id,
            name=name,
            timezone=timezone,
            platform=platform,
            base_period=base_period,
            fiscal_year_start_month=fiscal_year_start_month,
            fiscal_year_start_day=fiscal_year_start_day,
            multi_currency_enabled=multi_currency_enabled,
            home_currency=currency,
            created_at=now,
            updated_at=now,
        )
        self.session.add(company)
        self._flush(f"company {name!r}")
        self._sequences.initialize_company(company.id)

        logger.info(
            "company_created",
            extra={
                "company_id": company.id,
                "organization_id": organization_id,
                "base_period": base_period.value,
                "home_currency": currency,
            },
        )
        return CompanyInfo.from_model(company)

    def get_company(self, company_id: str) -> CompanyInfo:
        return CompanyInfo.from_model(self._require(Company, company_id))

    def create_user(
        self,
        company_id: str,
        email: str,
        full_name: str,
        is_admin: bool = False,
        status: UserStatus | str = UserStatus.PENDING,
    ) -> UserInfo:
        """
        Add a user to a company.  Emails are stored lower-cased.

        Raises:
            NotFoundError: Unknown company.
            ValidationError: Malformed email or status.
            ConflictError: Email already used in the company.
        """
        self._require(Company, company_id)

        normalized = (email or "").strip().lower()
        local, _, domain = normalized.partition("@")
        if not local or not domain:
            raise ValidationError(f"Invalid email address: {email!r}", field="email")
        status = coerce_enum(UserStatus, status, "status")

        duplicate = self.session.execute(
            select(User.id).where(User.company_id == company_id, User.email == normalized)
        ).first()
        if duplicate is not None:
            raise ConflictError(
                f"User {normalized} already exists in company {company_id}",
                constraint="uq_user_company_email",
            )

        now = self._clock.now_utc()
        user = User(
            id=self._ids.new_id(),
            company_id=company_id,
            email=normalized,
            full_name=full_name,
            is_admin=is_admin,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        self._flush(f"user {normalized}")

        logger.info("user_created", extra={"company_id": company_id, "user_id": user.id})
        return UserInfo.from_model(user)

    def get_user(self, user_id: str) -> UserInfo:
        return UserInfo.from_model(self._require(User, user_id))
