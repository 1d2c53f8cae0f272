"""
AccountService -- chart of accounts hierarchy management.

Responsibility:
    Creates accounts, moves them within the tree, and activates or
    deactivates them while keeping the hierarchy rules intact.  Read-side
    traversal (chains, children, descendants) is delegated to
    AccountSelector.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Classification table: type must be legal for the classification and
      subtype legal for the type (domain.chart).
    - Child inherits parent: a child's classification, type and subtype
      equal its parent's, at create and at reparent.
    - No active child of an inactive parent: a child created under an
      inactive parent is created inactive, deactivation cascades to every
      active descendant, and activation refuses under an inactive parent.
    - No cycles: reparenting under the account itself or one of its
      descendants is rejected.
    - fully_qualified_name is "parent fqn:name", recomputed for the whole
      moved subtree on reparent.
    - Account currency equals the company home currency unless the company
      has multi-currency enabled.

Failure modes:
    - NotFoundError: unknown company, account or parent.
    - ValidationError: illegal classification combination, parent mismatch,
      cross-company parent, bad or disallowed currency.
    - ConflictError: duplicate (company, fqn, active), or an active account
      under an inactive parent.
    - CycleDetectedError: reparent would create a cycle.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import (
    AccountClassification,
    AccountSubType,
    AccountType,
    SpecialUseType,
    validate_classification,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.currency import validate_currency
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.domain.ids import IdGenerator
from ledger_kernel.exceptions import ConflictError, CycleDetectedError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.organization import Company, Platform
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")


class AccountService(BaseService):
    """
    Service for the account hierarchy.

    Guarantees:
        - All public methods return frozen AccountInfo DTOs.
        - Cascading deactivation changes the whole subtree in the caller's
          transaction, or nothing.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT compute balances (see LedgerSelector).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        super().__init__(session, clock, id_generator)
        self._selector = AccountSelector(session)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(
        self,
        company_id: str,
        classification: AccountClassification | str,
        account_type: AccountType | str,
        account_sub_type: AccountSubType | str,
        name: str,
        parent_id: str | None = None,
        currency: str | None = None,
        special_use_type: SpecialUseType | str | None = None,
        platform: Platform | str | None = None,
        source_id: str | None = None,
    ) -> AccountInfo:
        """
        Create an account, optionally as the child of ``parent_id``.

        Postconditions:
            - fully_qualified_name is ``name`` for a root, else
              ``parent fqn:name``.
            - active is False when the parent is inactive.

        Raises:
            NotFoundError: Unknown company or parent.
            ValidationError: Illegal classification, parent mismatch or
                currency.
            ConflictError: Duplicate fully qualified name.
        """
        company = self._require(Company, company_id)

        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required", field="name")

        cls_, type_, sub, special = validate_classification(
            classification, account_type, account_sub_type, special_use_type
        )

        active = True
        fqn = name
        if parent_id is not None:
            parent = self._require(Account, parent_id)
            self._check_parent(parent, company_id, cls_, type_, sub)
            fqn = parent.qualified_child_name(name)
            active = parent.active

        currency = self._resolve_currency(company, currency)

        if platform is None:
            platform = company.platform
        try:
            platform = Platform(platform)
        except ValueError:
            raise ValidationError(f"{platform!r} is not a valid Platform", field="platform") from None

        self._check_name_free(company_id, fqn, active)

        now = self._clock.now_utc()
        account = Account(
            id=self._ids.new_id(),
            company_id=company_id,
            parent_account_id=parent_id,
            platform=platform,
            source_id=source_id,
            currency=currency,
            fully_qualified_name=fqn,
            name=name,
            classification=cls_,
            account_type=type_,
            account_sub_type=sub,
            special_use_type=special,
            active=active,
            created_at=now,
            updated_at=now,
        )
        self.session.add(account)
        self._flush(f"account {fqn!r}")

        logger.info(
            "account_created",
            extra={
                "company_id": company_id,
                "account_id": account.id,
                "fully_qualified_name": fqn,
                "active": active,
            },
        )
        return AccountInfo.from_model(account)

    def deactivate_account(self, account_id: str) -> list[AccountInfo]:
        """
        Deactivate an account and every active descendant.

        Returns:
            The accounts that changed, the requested account first.  An
            already inactive account is a no-op and returns [].

        Raises:
            NotFoundError: Unknown account.
            ConflictError: An inactive account with the same fully
                qualified name already exists.
        """
        account = self._require(Account, account_id, for_update=True)
        if not account.active:
            return []

        now = self._clock.now_utc()
        changed = [account]
        for descendant_id in self._selector.descendant_ids(account_id):
            descendant = self.session.get(Account, descendant_id)
            if descendant.active:
                changed.append(descendant)

        for row in changed:
            row.active = False
            row.touch(now)
        self._flush(f"deactivation of {account.fully_qualified_name!r}")

        logger.info(
            "account_deactivated",
            extra={
                "company_id": account.company_id,
                "account_id": account_id,
                "cascaded_count": len(changed) - 1,
            },
        )
        return [AccountInfo.from_model(row) for row in changed]

    def activate_account(self, account_id: str) -> AccountInfo:
        """
        Re-activate a single account.  Descendants are left as they are.

        Raises:
            NotFoundError: Unknown account.
            ConflictError: The parent is inactive, or an active account with
                the same fully qualified name exists.
        """
        account = self._require(Account, account_id, for_update=True)
        if account.active:
            return AccountInfo.from_model(account)

        if account.parent_account_id is not None:
            parent = self._require(Account, account.parent_account_id)
            if not parent.active:
                logger.warning(
                    "account_activation_refused",
                    extra={"account_id": account_id, "parent_account_id": parent.id},
                )
                raise ConflictError(
                    f"Account {account.fully_qualified_name!r} cannot be activated "
                    f"while its parent is inactive"
                )

        account.active = True
        account.touch(self._clock.now_utc())
        self._flush(f"activation of {account.fully_qualified_name!r}")

        logger.info(
            "account_activated",
            extra={"company_id": account.company_id, "account_id": account_id},
        )
        return AccountInfo.from_model(account)

    def reparent_account(self, account_id: str, new_parent_id: str | None) -> AccountInfo:
        """
        Move an account (and its subtree) under ``new_parent_id``, or to the
        root when None.

        Raises:
            NotFoundError: Unknown account or new parent.
            ValidationError: New parent in another company or with a
                different classification, type or subtype.
            CycleDetectedError: New parent is the account or a descendant.
            ConflictError: Active account under an inactive parent, or a
                fully qualified name collision in the moved subtree.
        """
        account = self._require(Account, account_id, for_update=True)
        if account.parent_account_id == new_parent_id:
            return AccountInfo.from_model(account)

        new_fqn = account.name
        if new_parent_id is not None:
            if new_parent_id == account_id:
                raise CycleDetectedError(account_id, [account_id, account_id])
            parent = self._require(Account, new_parent_id)
            self._check_parent(
                parent,
                account.company_id,
                AccountClassification(account.classification),
                AccountType(account.account_type),
                AccountSubType(account.account_sub_type),
            )
            ancestors = self._selector.ancestor_ids(new_parent_id)
            if account_id in ancestors:
                path = [new_parent_id, *ancestors[: ancestors.index(account_id) + 1]]
                logger.warning(
                    "account_reparent_cycle",
                    extra={"account_id": account_id, "new_parent_id": new_parent_id},
                )
                raise CycleDetectedError(account_id, [account_id, *path])
            if account.active and not parent.active:
                raise ConflictError(
                    f"Active account {account.fully_qualified_name!r} cannot be moved "
                    f"under inactive parent {parent.fully_qualified_name!r}"
                )
            new_fqn = parent.qualified_child_name(account.name)

        now = self._clock.now_utc()
        with self.session.no_autoflush:
            account.parent_account_id = new_parent_id
            self._rename_subtree(account, new_fqn, now)
        self._flush(f"move of {account.name!r}")

        logger.info(
            "account_reparented",
            extra={
                "company_id": account.company_id,
                "account_id": account_id,
                "new_parent_id": new_parent_id,
                "fully_qualified_name": new_fqn,
            },
        )
        return AccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_account(self, account_id: str) -> AccountInfo:
        return self._selector.get_account(account_id)

    def list_children(self, account_id: str, active_only: bool = False) -> list[AccountInfo]:
        return self._selector.list_children(account_id, active_only=active_only)

    def descendant_ids(self, account_id: str) -> list[str]:
        return self._selector.descendant_ids(account_id)

    def resolve_chain(self, account_id: str) -> list[AccountInfo]:
        """
        Ancestors of ``account_id``, nearest first, up to the root.

        Raises:
            CycleDetectedError: The parent chain revisits an account.
        """
        return self._selector.resolve_chain(account_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_parent(
        self,
        parent: Account,
        company_id: str,
        classification: AccountClassification,
        account_type: AccountType,
        account_sub_type: AccountSubType,
    ) -> None:
        if parent.company_id != company_id:
            raise ValidationError(
                f"Parent account {parent.id} belongs to another company",
                field="parent_id",
            )
        expected = (
            AccountClassification(parent.classification),
            AccountType(parent.account_type),
            AccountSubType(parent.account_sub_type),
        )
        requested = (classification, account_type, account_sub_type)
        if requested != expected:
            logger.warning(
                "account_parent_mismatch",
                extra={
                    "parent_account_id": parent.id,
                    "expected": [member.value for member in expected],
                    "requested": [member.value for member in requested],
                },
            )
            raise ValidationError(
                "Child account must match its parent's classification, type and "
                f"subtype ({', '.join(member.value for member in expected)})",
                field="account_type",
            )

    def _resolve_currency(self, company: Company, currency: str | None) -> str:
        if currency is None:
            return company.home_currency
        code = validate_currency(currency)
        if not company.multi_currency_enabled and code != company.home_currency:
            raise ValidationError(
                f"Company {company.id} is single-currency ({company.home_currency}); "
                f"cannot create a {code} account",
                field="currency",
            )
        return code

    def _check_name_free(self, company_id: str, fqn: str, active: bool) -> None:
        taken = self.session.execute(
            select(Account.id).where(
                Account.company_id == company_id,
                Account.fully_qualified_name == fqn,
                Account.active.is_(active),
            )
        ).first()
        if taken is not None:
            raise ConflictError(
                f"Account {fqn!r} already exists",
                constraint="uq_account_company_fqn_active",
            )

    def _rename_subtree(self, root: Account, fqn: str, now: datetime) -> None:
        root.fully_qualified_name = fqn
        root.touch(now)
        seen = {root.id}
        frontier = [root]
        while frontier:
            parent = frontier.pop()
            children = self.session.execute(
                select(Account).where(Account.parent_account_id == parent.id)
            ).scalars().all()
            for child in children:
                if child.id in seen:
                    continue
                seen.add(child.id)
                child.fully_qualified_name = parent.qualified_child_name(child.name)
                child.touch(now)
                frontier.append(child)
