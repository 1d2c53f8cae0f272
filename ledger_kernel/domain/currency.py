"""Currency -- the closed set of ISO 4217 codes accepted by the ledger."""

from ledger_kernel.exceptions import ValidationError

# Codes accepted for company home currencies and account currencies.
CURRENCY_CODES: frozenset[str] = frozenset(
    """
    AED AFN ALL AMD AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND BOB
    BOV BRL BSD BTN BWP BYN BZD CAD CDF CHE CHF CHW CLF CLP CNY COP COU CRC
    CUC CUP CVE CZK DJF DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP
    GMD GNF GTQ GYD HKD HNL HRK HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY
    KES KGS KHR KMF KPW KRW KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA
    MKD MMK MNT MOP MRU MUR MVR MWK MXN MXV MYR MZN NAD NGN NIO NOK NPR NZD
    OMR PAB PEN PGK PHP PKR PLN PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK
    SGD SHP SLL SOS SRD SSP STN SVC SYP SZL THB TJS TMT TND TOP TRY TTD TWD
    TZS UAH UGX USD USN UYI UYU UYW UZS VES VND VUV WST XAF XCD XOF XPF YER
    ZAR ZMW ZWL
    """.split()
)

# Minor-unit exponents that differ from the usual 2.
_ZERO_DECIMAL = frozenset(
    "BIF CLP DJF GNF ISK JPY KMF KRW PYG RWF UGX UYI VND VUV XAF XOF XPF".split()
)
_THREE_DECIMAL = frozenset("BHD IQD JOD KWD LYD OMR TND".split())
_FOUR_DECIMAL = frozenset({"CLF", "UYW"})


def is_valid_currency(code: str) -> bool:
    return code in CURRENCY_CODES


def validate_currency(code: str, field: str = "currency") -> str:
    """
    Return the normalized (upper-cased) code.

    Raises:
        ValidationError: if the code is not in the registry.
    """
    normalized = (code or "").strip().upper()
    if normalized not in CURRENCY_CODES:
        raise ValidationError(f"Unknown currency code: {code!r}", field=field)
    return normalized


def minor_unit_exponent(code: str) -> int:
    """Number of decimal places represented by one minor unit of ``code``."""
    code = validate_currency(code)
    if code in _ZERO_DECIMAL:
        return 0
    if code in _THREE_DECIMAL:
        return 3
    if code in _FOUR_DECIMAL:
        return 4
    return 2
