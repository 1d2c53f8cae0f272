"""
Chart -- closed account classification sets and their legality table.

Responsibility:
    Defines AccountClassification, AccountType, AccountSubType and
    SpecialUseType, and the static table mapping classification -> legal
    types -> legal subtypes.  The table is data, not inheritance; the
    account service consults it through ``validate_classification``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from enum import Enum
from types import MappingProxyType

from ledger_kernel.exceptions import ValidationError


class AccountClassification(str, Enum):
    """Accounting nature of an account."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSE = "Expense"
    UNKNOWN = "Unknown"


class AccountType(str, Enum):
    """Second level of the classification hierarchy."""

    CURRENT_ASSET = "CurrentAsset"
    FIXED_ASSET = "FixedAsset"
    LONG_TERM_ASSET = "LongTermAsset"
    CURRENT_LIABILITY = "CurrentLiability"
    LONG_TERM_LIABILITY = "LongTermLiability"
    CONTINGENT_LIABILITY = "ContingentLiability"
    CAPITAL = "Capital"
    RETAINED_PROFIT = "RetainedProfit"
    RESERVE = "Reserve"
    OPERATING_REVENUE = "OperatingRevenue"
    NON_OPERATING_REVENUE = "NonOperatingRevenue"
    GAIN_ON_SALE = "GainOnSale"
    DIRECT_EXPENSE = "DirectExpense"
    INDIRECT_EXPENSE = "IndirectExpense"
    OPERATING_EXPENSE = "OperatingExpense"
    UNCATEGORIZED_TYPE = "UncategorizedType"


class AccountSubType(str, Enum):
    """Leaf level of the classification hierarchy."""

    # Current assets
    CASH = "Cash"
    ACCOUNTS_RECEIVABLE = "AccountsReceivable"
    INVENTORY = "Inventory"
    PREPAID_EXPENSES = "PrepaidExpenses"
    MARKETABLE_SECURITIES = "MarketableSecurities"
    # Fixed assets
    LAND = "Land"
    BUILDING = "Building"
    EQUIPMENT = "Equipment"
    VEHICLES = "Vehicles"
    FURNITURE = "Furniture"
    # Long-term assets
    INVESTMENTS = "Investments"
    GOODWILL = "Goodwill"
    INTANGIBLE_ASSETS = "IntangibleAssets"
    LONG_TERM_DEPOSITS = "LongTermDeposits"
    DEFERRED_TAX_ASSET = "DeferredTaxAsset"
    # Current liabilities
    ACCOUNTS_PAYABLE = "AccountsPayable"
    SHORT_TERM_LOANS = "ShortTermLoans"
    ACCRUED_LIABILITIES = "AccruedLiabilities"
    UNEARNED_REVENUE = "UnearnedRevenue"
    CURRENT_PORTION_OF_LTD = "CurrentPortionOfLTD"
    # Long-term liabilities
    LONG_TERM_DEBT = "LongTermDebt"
    BONDS = "Bonds"
    MORTGAGES = "Mortgages"
    PENSION_LIABILITY = "PensionLiability"
    DEFERRED_TAX_LIABILITY = "DeferredTaxLiability"
    # Contingent liabilities
    LEGAL_CLAIMS = "LegalClaims"
    PRODUCT_WARRANTIES = "ProductWarranties"
    GUARANTEE_OBLIGATIONS = "GuaranteeObligations"
    ENVIRONMENTAL_LIABILITY = "EnvironmentalLiability"
    # Capital
    COMMON_STOCK = "CommonStock"
    PREFERRED_STOCK = "PreferredStock"
    ADDITIONAL_PAID_IN_CAPITAL = "AdditionalPaidInCapital"
    OWNER_INVESTMENT = "OwnerInvestment"
    PARTNER_CAPITAL = "PartnerCapital"
    # Retained profit
    RETAINED_EARNINGS = "RetainedEarnings"
    ACCUMULATED_PROFITS = "AccumulatedProfits"
    ACCUMULATED_DEFICIT = "AccumulatedDeficit"
    UNDISTRIBUTED_PROFIT = "UndistributedProfit"
    # Reserves
    GENERAL_RESERVE = "GeneralReserve"
    CAPITAL_RESERVE = "CapitalReserve"
    STATUTORY_RESERVE = "StatutoryReserve"
    REVALUATION_RESERVE = "RevaluationReserve"
    TREASURY_STOCK = "TreasuryStock"
    # Operating revenue
    SALES_REVENUE = "SalesRevenue"
    SERVICE_REVENUE = "ServiceRevenue"
    COMMISSION_REVENUE = "CommissionRevenue"
    FEE_REVENUE = "FeeRevenue"
    SUBSCRIPTION_REVENUE = "SubscriptionRevenue"
    # Non-operating revenue
    INTEREST_INCOME = "InterestIncome"
    DIVIDEND_INCOME = "DividendIncome"
    RENTAL_INCOME = "RentalIncome"
    ROYALTY_INCOME = "RoyaltyIncome"
    LICENSING_REVENUE = "LicensingRevenue"
    # Gains on sale
    GAIN_ON_SALE_OF_ASSETS = "GainOnSaleOfAssets"
    GAIN_ON_INVESTMENTS = "GainOnInvestments"
    GAIN_ON_DEBT_SETTLEMENT = "GainOnDebtSettlement"
    GAIN_ON_FOREIGN_EXCHANGE = "GainOnForeignExchange"
    # Direct expenses
    COST_OF_GOODS_SOLD = "CostOfGoodsSold"
    DIRECT_LABOR = "DirectLabor"
    DIRECT_MATERIALS = "DirectMaterials"
    MANUFACTURING_OVERHEAD = "ManufacturingOverhead"
    PURCHASES_DISCOUNTS = "PurchasesDiscounts"
    # Indirect expenses
    SALARIES = "Salaries"
    RENT = "Rent"
    UTILITIES = "Utilities"
    OFFICE_SUPPLIES = "OfficeSupplies"
    INSURANCE = "Insurance"
    # Operating expenses
    MARKETING = "Marketing"
    RESEARCH_AND_DEVELOPMENT = "ResearchAndDevelopment"
    DEPRECIATION = "Depreciation"
    AMORTIZATION = "Amortization"
    INTEREST = "Interest"
    # Unknown
    UNCATEGORIZED = "Uncategorized"


class SpecialUseType(str, Enum):
    """Optional special-purpose marker on an account."""

    ACCRUED_EXPENSE = "AccruedExpense"


_C = AccountClassification
_T = AccountType
_S = AccountSubType

TYPES_BY_CLASSIFICATION: MappingProxyType = MappingProxyType({
    _C.ASSET: (_T.CURRENT_ASSET, _T.FIXED_ASSET, _T.LONG_TERM_ASSET),
    _C.LIABILITY: (
        _T.CURRENT_LIABILITY, _T.LONG_TERM_LIABILITY, _T.CONTINGENT_LIABILITY,
    ),
    _C.EQUITY: (_T.CAPITAL, _T.RETAINED_PROFIT, _T.RESERVE),
    _C.INCOME: (_T.OPERATING_REVENUE, _T.NON_OPERATING_REVENUE, _T.GAIN_ON_SALE),
    _C.EXPENSE: (_T.DIRECT_EXPENSE, _T.INDIRECT_EXPENSE, _T.OPERATING_EXPENSE),
    _C.UNKNOWN: (_T.UNCATEGORIZED_TYPE,),
})

SUBTYPES_BY_TYPE: MappingProxyType = MappingProxyType({
    _T.CURRENT_ASSET: (
        _S.CASH, _S.ACCOUNTS_RECEIVABLE, _S.INVENTORY, _S.PREPAID_EXPENSES,
        _S.MARKETABLE_SECURITIES,
    ),
    _T.FIXED_ASSET: (_S.LAND, _S.BUILDING, _S.EQUIPMENT, _S.VEHICLES, _S.FURNITURE),
    _T.LONG_TERM_ASSET: (
        _S.INVESTMENTS, _S.GOODWILL, _S.INTANGIBLE_ASSETS, _S.LONG_TERM_DEPOSITS,
        _S.DEFERRED_TAX_ASSET,
    ),
    _T.CURRENT_LIABILITY: (
        _S.ACCOUNTS_PAYABLE, _S.SHORT_TERM_LOANS, _S.ACCRUED_LIABILITIES,
        _S.UNEARNED_REVENUE, _S.CURRENT_PORTION_OF_LTD,
    ),
    _T.LONG_TERM_LIABILITY: (
        _S.LONG_TERM_DEBT, _S.BONDS, _S.MORTGAGES, _S.PENSION_LIABILITY,
        _S.DEFERRED_TAX_LIABILITY,
    ),
    _T.CONTINGENT_LIABILITY: (
        _S.LEGAL_CLAIMS, _S.PRODUCT_WARRANTIES, _S.GUARANTEE_OBLIGATIONS,
        _S.ENVIRONMENTAL_LIABILITY,
    ),
    _T.CAPITAL: (
        _S.COMMON_STOCK, _S.PREFERRED_STOCK, _S.ADDITIONAL_PAID_IN_CAPITAL,
        _S.OWNER_INVESTMENT, _S.PARTNER_CAPITAL,
    ),
    _T.RETAINED_PROFIT: (
        _S.RETAINED_EARNINGS, _S.ACCUMULATED_PROFITS, _S.ACCUMULATED_DEFICIT,
        _S.UNDISTRIBUTED_PROFIT,
    ),
    _T.RESERVE: (
        _S.GENERAL_RESERVE, _S.CAPITAL_RESERVE, _S.STATUTORY_RESERVE,
        _S.REVALUATION_RESERVE, _S.TREASURY_STOCK,
    ),
    _T.OPERATING_REVENUE: (
        _S.SALES_REVENUE, _S.SERVICE_REVENUE, _S.COMMISSION_REVENUE,
        _S.FEE_REVENUE, _S.SUBSCRIPTION_REVENUE,
    ),
    _T.NON_OPERATING_REVENUE: (
        _S.INTEREST_INCOME, _S.DIVIDEND_INCOME, _S.RENTAL_INCOME,
        _S.ROYALTY_INCOME, _S.LICENSING_REVENUE,
    ),
    _T.GAIN_ON_SALE: (
        _S.GAIN_ON_SALE_OF_ASSETS, _S.GAIN_ON_INVESTMENTS,
        _S.GAIN_ON_DEBT_SETTLEMENT, _S.GAIN_ON_FOREIGN_EXCHANGE,
    ),
    _T.DIRECT_EXPENSE: (
        _S.COST_OF_GOODS_SOLD, _S.DIRECT_LABOR, _S.DIRECT_MATERIALS,
        _S.MANUFACTURING_OVERHEAD, _S.PURCHASES_DISCOUNTS,
    ),
    _T.INDIRECT_EXPENSE: (
        _S.SALARIES, _S.RENT, _S.UTILITIES, _S.OFFICE_SUPPLIES, _S.INSURANCE,
    ),
    _T.OPERATING_EXPENSE: (
        _S.MARKETING, _S.RESEARCH_AND_DEVELOPMENT, _S.DEPRECIATION,
        _S.AMORTIZATION, _S.INTEREST,
    ),
    _T.UNCATEGORIZED_TYPE: (_S.UNCATEGORIZED,),
})


def coerce_enum(enum_cls, value, field: str):
    """Coerce ``value`` to ``enum_cls`` or raise ValidationError naming ``field``."""
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"{value!r} is not a valid {enum_cls.__name__}", field=field
        ) from None


def validate_classification(
    classification: AccountClassification | str,
    account_type: AccountType | str,
    account_sub_type: AccountSubType | str,
    special_use_type: SpecialUseType | str | None = None,
) -> tuple[AccountClassification, AccountType, AccountSubType, SpecialUseType | None]:
    """
    Check a (classification, type, subtype, special use) combination.

    Returns the values coerced to their enums.

    Raises:
        ValidationError: unknown member, type not legal for the
            classification, subtype not legal for the type, or a special use
            type on a non-Expense account.
    """
    cls_ = coerce_enum(AccountClassification, classification, "classification")
    type_ = coerce_enum(AccountType, account_type, "account_type")
    sub = coerce_enum(AccountSubType, account_sub_type, "account_sub_type")

    if type_ not in TYPES_BY_CLASSIFICATION[cls_]:
        raise ValidationError(
            f"Account type {type_.value} is not valid for classification {cls_.value}",
            field="account_type",
        )
    if sub not in SUBTYPES_BY_TYPE[type_]:
        raise ValidationError(
            f"Account subtype {sub.value} is not valid for account type {type_.value}",
            field="account_sub_type",
        )

    special = None
    if special_use_type is not None:
        special = coerce_enum(SpecialUseType, special_use_type, "special_use_type")
        if cls_ != AccountClassification.EXPENSE:
            raise ValidationError(
                f"Special use type {special.value} is only valid for Expense accounts",
                field="special_use_type",
            )

    return cls_, type_, sub, special
