"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-side traversal of the account tree: lookups, children,
    descendants and the ancestor chain.
Architecture position: Kernel > Selectors.

The tree is an arena of Account rows linked only by parent_account_id.
Every walk keeps a visited set, so corrupt data with a cycle terminates:
ancestor walks raise CycleDetectedError, descendant walks skip revisits.
"""

from sqlalchemy import select

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import CycleDetectedError, NotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector


class AccountSelector(BaseSelector):
    """Queries over one company's chart of accounts."""

    def get_account(self, account_id: str) -> AccountInfo:
        account = self.session.get(Account, account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return AccountInfo.from_model(account)

    def list_children(self, account_id: str, active_only: bool = False) -> list[AccountInfo]:
        stmt = select(Account).where(Account.parent_account_id == account_id)
        if active_only:
            stmt = stmt.where(Account.active.is_(True))
        rows = self.session.execute(stmt.order_by(Account.fully_qualified_name)).scalars()
        return [AccountInfo.from_model(row) for row in rows]

    def descendant_ids(self, account_id: str) -> list[str]:
        """
        Ids of every account below ``account_id``, breadth first.

        The account itself is not included.
        """
        seen = {account_id}
        result: list[str] = []
        frontier = [account_id]
        while frontier:
            child_ids = self.session.execute(
                select(Account.id)
                .where(Account.parent_account_id.in_(frontier))
                .order_by(Account.fully_qualified_name)
            ).scalars().all()
            frontier = []
            for child_id in child_ids:
                if child_id in seen:
                    continue
                seen.add(child_id)
                result.append(child_id)
                frontier.append(child_id)
        return result

    def ancestor_ids(self, account_id: str) -> list[str]:
        """
        Ids of the ancestors of ``account_id``, nearest first, ending at the root.

        Raises:
            NotFoundError: The account or a parent in the chain is missing.
            CycleDetectedError: The chain revisits an account.
        """
        account = self.session.get(Account, account_id)
        if account is None:
            raise NotFoundError("Account", account_id)

        visited = {account_id}
        chain: list[str] = []
        parent_id = account.parent_account_id
        while parent_id is not None:
            if parent_id in visited:
                raise CycleDetectedError(account_id, [account_id, *chain, parent_id])
            parent = self.session.get(Account, parent_id)
            if parent is None:
                raise NotFoundError("Account", parent_id)
            visited.add(parent_id)
            chain.append(parent_id)
            parent_id = parent.parent_account_id
        return chain

    def resolve_chain(self, account_id: str) -> list[AccountInfo]:
        return [self.get_account(ancestor_id) for ancestor_id in self.ancestor_ids(account_id)]
