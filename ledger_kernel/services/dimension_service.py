"""
DimensionService -- categorical tagging of journal lines.

Responsibility:
    Manages a company's dimensions (Department, Location, Vendor, ...) and
    their values, attaches one value per dimension to journal lines, and
    derives the vendor and customer tables from the "Vendor" and "Customer"
    dimensions.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by JournalService for tags requested at entry creation, and by
    the orchestrator for direct tagging.

Invariants enforced:
    - A line carries at most one value of any dimension.  Re-tagging with
      the same value is idempotent; a different value raises
      DuplicateDimensionError (backstop: uq_line_dimension).
    - Line, dimension and value belong to the same company, the value
      belongs to the dimension, and only active values can be applied.
    - Values are soft-deactivated, never deleted.

Failure modes:
    - NotFoundError: unknown line, dimension or value.
    - ValidationError: company or dimension mismatch, inactive value or
      dimension.
    - ConflictError: duplicate active dimension name or value.
    - DuplicateDimensionError: line already tagged with another value.
"""

from sqlalchemy import select

from ledger_kernel.domain.chart import coerce_enum
from ledger_kernel.domain.dtos import (
    CounterpartySyncResult,
    DimensionInfo,
    DimensionValueInfo,
    LineTagInfo,
)
from ledger_kernel.exceptions import ConflictError, DuplicateDimensionError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.dimensions import (
    CUSTOMER_DIMENSION,
    VENDOR_DIMENSION,
    Dimension,
    DimensionSource,
    DimensionValue,
    JournalLineDimension,
)
from ledger_kernel.models.journal import JournalLine
from ledger_kernel.models.organization import Company
from ledger_kernel.models.party import Customer, Vendor
from ledger_kernel.services.base import BaseService

logger = get_logger("services.dimension")


class DimensionService(BaseService):
    """Service for dimensions, dimension values, line tags and counterparties."""

    def create_dimension(
        self,
        company_id: str,
        name: str,
        source: DimensionSource | str = DimensionSource.AVISE,
    ) -> DimensionInfo:
        """
        Raises:
            NotFoundError: Unknown company.
            ConflictError: An active dimension with this name and source exists.
        """
        self._require(Company, company_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Dimension name is required", field="name")
        source = coerce_enum(DimensionSource, source, "source")

        taken = self.session.execute(
            select(Dimension.id).where(
                Dimension.company_id == company_id,
                Dimension.name == name,
                Dimension.source == source,
                Dimension.active.is_(True),
            )
        ).first()
        if taken is not None:
            raise ConflictError(
                f"Dimension {name!r} already exists", constraint="uq_dimension_name"
            )

        dimension = Dimension(
            id=self._ids.new_id(),
            company_id=company_id,
            name=name,
            source=source,
            active=True,
        )
        self.session.add(dimension)
        self._flush(f"dimension {name!r}")

        logger.info(
            "dimension_created",
            extra={"company_id": company_id, "dimension_id": dimension.id, "dimension_name": name},
        )
        return DimensionInfo.from_model(dimension)

    def add_value(
        self,
        dimension_id: str,
        value: str,
        description: str | None = None,
    ) -> DimensionValueInfo:
        """
        Raises:
            NotFoundError: Unknown dimension.
            ValidationError: Empty value or inactive dimension.
            ConflictError: The dimension already has this value active.
        """
        dimension = self._require(Dimension, dimension_id)
        if not dimension.active:
            raise ValidationError(
                f"Dimension {dimension.name!r} is inactive", field="dimension_id"
            )
        value = (value or "").strip()
        if not value:
            raise ValidationError("Dimension value is required", field="value")

        taken = self.session.execute(
            select(DimensionValue.id).where(
                DimensionValue.dimension_id == dimension_id,
                DimensionValue.value == value,
                DimensionValue.active.is_(True),
            )
        ).first()
        if taken is not None:
            raise ConflictError(f"{dimension.name} value {value!r} already exists")

        row = DimensionValue(
            id=self._ids.new_id(),
            company_id=dimension.company_id,
            dimension_id=dimension_id,
            dimension_name=dimension.name,
            value=value,
            description=description,
            active=True,
        )
        self.session.add(row)
        self._flush(f"{dimension.name} value {value!r}")

        logger.info(
            "dimension_value_added",
            extra={"dimension_id": dimension_id, "dimension_value_id": row.id},
        )
        return DimensionValueInfo.from_model(row)

    def deactivate_value(self, dimension_value_id: str) -> DimensionValueInfo:
        """Soft-deactivate a value.  Existing tags keep pointing at it."""
        row = self._require(DimensionValue, dimension_value_id)
        if row.active:
            row.active = False
            self._flush(f"deactivation of {row.dimension_name} value {row.value!r}")
            logger.info(
                "dimension_value_deactivated",
                extra={"dimension_id": row.dimension_id, "dimension_value_id": row.id},
            )
        return DimensionValueInfo.from_model(row)

    def list_values(self, dimension_id: str, active_only: bool = False) -> list[DimensionValueInfo]:
        stmt = select(DimensionValue).where(DimensionValue.dimension_id == dimension_id)
        if active_only:
            stmt = stmt.where(DimensionValue.active.is_(True))
        rows = self.session.execute(stmt.order_by(DimensionValue.value)).scalars()
        return [DimensionValueInfo.from_model(row) for row in rows]

    def tag_line(self, line_id: str, dimension_id: str, dimension_value_id: str) -> LineTagInfo:
        """
        Attach a dimension value to a journal line.

        Postconditions:
            - The line carries exactly one tag for ``dimension_id``, with
              ``dimension_value_id``.

        Raises:
            NotFoundError: Unknown line, dimension or value.
            ValidationError: Value not in the dimension, cross-company
                reference, or inactive value.
            DuplicateDimensionError: The line holds another value of the
                dimension.
        """
        line = self._require(JournalLine, line_id)
        dimension = self._require(Dimension, dimension_id)
        value = self._require(DimensionValue, dimension_value_id)

        if value.dimension_id != dimension_id:
            raise ValidationError(
                f"Value {dimension_value_id} does not belong to dimension {dimension.name!r}",
                field="dimension_value_id",
            )
        if not (line.company_id == dimension.company_id == value.company_id):
            raise ValidationError(
                "Line, dimension and value must belong to the same company",
                field="dimension_id",
            )

        existing = self.session.execute(
            select(JournalLineDimension).where(
                JournalLineDimension.journal_line_id == line_id,
                JournalLineDimension.dimension_id == dimension_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            if existing.dimension_value_id == dimension_value_id:
                return LineTagInfo.from_model(existing)
            logger.warning(
                "duplicate_dimension_tag",
                extra={
                    "journal_line_id": line_id,
                    "dimension_id": dimension_id,
                    "existing_value_id": existing.dimension_value_id,
                    "requested_value_id": dimension_value_id,
                },
            )
            raise DuplicateDimensionError(
                line_id, dimension_id, existing.dimension_value_id, dimension_value_id
            )

        if not value.active:
            raise ValidationError(
                f"{value.dimension_name} value {value.value!r} is inactive",
                field="dimension_value_id",
            )

        tag = JournalLineDimension(
            id=self._ids.new_id(),
            company_id=line.company_id,
            journal_line_id=line_id,
            dimension_id=dimension_id,
            dimension_value_id=dimension_value_id,
            name=dimension.name,
            value=value.value,
        )
        line.dimension_tags.append(tag)
        self._flush(f"tag {dimension.name}={value.value!r} on line {line_id}")

        logger.debug(
            "line_tagged",
            extra={
                "journal_line_id": line_id,
                "dimension_id": dimension_id,
                "dimension_value_id": dimension_value_id,
            },
        )
        return LineTagInfo.from_model(tag)

    def sync_counterparties(self, company_id: str) -> CounterpartySyncResult:
        """
        Upsert vendors and customers from the company's "Vendor" and
        "Customer" dimension values.

        A counterparty is active when any value with its name is active.
        Existing rows whose flag differs are flipped; missing rows are
        created.  Nothing is deleted.
        """
        self._require(Company, company_id)
        vendors_created, vendors_updated = self._sync_party(company_id, VENDOR_DIMENSION, Vendor)
        customers_created, customers_updated = self._sync_party(
            company_id, CUSTOMER_DIMENSION, Customer
        )
        result = CounterpartySyncResult(
            vendors_created=vendors_created,
            vendors_updated=vendors_updated,
            customers_created=customers_created,
            customers_updated=customers_updated,
        )
        logger.info(
            "counterparties_synced",
            extra={
                "company_id": company_id,
                "vendors_created": vendors_created,
                "vendors_updated": vendors_updated,
                "customers_created": customers_created,
                "customers_updated": customers_updated,
            },
        )
        return result

    def _sync_party(self, company_id: str, dimension_name: str, model) -> tuple[int, int]:
        values = self.session.execute(
            select(DimensionValue.value, DimensionValue.active)
            .join(Dimension, Dimension.id == DimensionValue.dimension_id)
            .where(
                Dimension.company_id == company_id,
                Dimension.name == dimension_name,
            )
        ).all()

        desired: dict[str, bool] = {}
        for name, active in values:
            desired[name] = desired.get(name, False) or bool(active)

        rows = self.session.execute(
            select(model).where(model.company_id == company_id)
        ).scalars().all()
        by_name: dict[str, list] = {}
        for row in rows:
            by_name.setdefault(row.display_name, []).append(row)

        now = self._clock.now_utc()
        created = updated = 0
        for name, active in sorted(desired.items()):
            current = by_name.get(name, [])
            if any(row.active == active for row in current):
                continue
            if current:
                current[0].active = active
                current[0].touch(now)
                updated += 1
            else:
                self.session.add(
                    model(
                        id=self._ids.new_id(),
                        company_id=company_id,
                        display_name=name,
                        active=active,
                        created_at=now,
                        updated_at=now,
                    )
                )
                created += 1

        self._flush(f"{dimension_name.lower()} sync for company {company_id}")
        return created, updated
