"""Address validation and display formatting helpers."""

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from polygon_wallet_dashboard.errors import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: str | None) -> bool:
    """
    Check whether ``address`` is a 0x-prefixed 40-hex-character string.

    Checksum casing is ignored.

    Parameters
    ----------
    address : str | None
        Candidate address

    Returns
    -------
    bool
        True if the address is well formed

    """
    if not address or not isinstance(address, str):
        return False
    return ADDRESS_PATTERN.fullmatch(address) is not None


def validate_address(address: str | None) -> str:
    """
    Return ``address`` unchanged if it is well formed, or raise.

    Surrounding whitespace is not trimmed; callers reading user input strip it first.

    Raises
    ------
    ValidationError
        If the address is malformed

    """
    if not is_valid_address(address):
        msg = f"Invalid wallet address: {address!r}"
        raise ValidationError(msg, source="address")
    return address


def addresses_equal(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality."""
    return bool(a) and bool(b) and a.lower() == b.lower()


def format_address(address: str | None) -> str:
    """Shorten an address to its first 6 and last 4 characters."""
    if not address:
        return ""
    if len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_token_balance(balance: str | int | None, decimals: int = 18, display_decimals: int = 4) -> str:
    """
    Format a fixed-point integer balance as a decimal string.

    The fractional part is truncated (never rounded) to ``display_decimals`` digits
    and trailing zeros are dropped.

    Parameters
    ----------
    balance : str | int | None
        Raw integer balance
    decimals : int
        Token decimals
    display_decimals : int
        Maximum fractional digits to keep

    Returns
    -------
    str
        Formatted balance, e.g. ``"1.5"``

    Examples
    --------
    >>> format_token_balance("1500000000000000000", 18, 4)
    '1.5'
    >>> format_token_balance("0")
    '0'

    """
    if not balance:
        return "0"
    raw = int(balance)
    divisor = 10**decimals
    whole, fractional = divmod(raw, divisor)

    if fractional == 0:
        return str(whole)

    fractional_str = str(fractional).rjust(decimals, "0")
    trimmed = fractional_str[:display_decimals].rstrip("0")
    return f"{whole}.{trimmed}" if trimmed else str(whole)


def format_price(price: Decimal | float | str | None) -> str:
    """
    Format a USD price.

    Returns ``"N/A"`` for missing, zero or unparsable prices; six decimals below
    one cent, two otherwise.

    """
    if price is None or price == "" or price == 0:
        return "N/A"
    try:
        value = Decimal(str(price))
    except InvalidOperation:
        return "N/A"
    if value.is_nan() or value == 0:
        return "N/A"
    if value < Decimal("0.01"):
        return f"${value:.6f}"
    return f"${value:,.2f}"


def format_gas_fee(gas_used: str | int | None, gas_price: str | int | None, native_symbol: str = "MATIC") -> str:
    """Format gas used times gas price as a native-coin amount."""
    if not gas_used or not gas_price:
        return "N/A"
    fee = int(gas_used) * int(gas_price)
    return f"{format_token_balance(str(fee), 18, 6)} {native_symbol}"


def format_datetime(timestamp: int | float | None) -> str:
    """Format unix seconds as ``YYYY-MM-DD HH:MM:SS`` (UTC)."""
    if not timestamp:
        return ""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_relative_time(timestamp: int | float | None, now: float | None = None) -> str:
    """
    Format unix seconds relative to ``now`` (e.g., '2 hours ago').

    Anything 30 days or older falls back to :func:`format_datetime`.

    """
    if not timestamp:
        return ""
    now = datetime.now(tz=timezone.utc).timestamp() if now is None else now
    diff_secs = int(now - timestamp)
    diff_mins = diff_secs // 60
    diff_hours = diff_mins // 60
    diff_days = diff_hours // 24

    if diff_secs < 60:
        return "Just now"
    if diff_mins < 60:
        return f"{diff_mins} minutes ago"
    if diff_hours < 24:
        return f"{diff_hours} hours ago"
    if diff_days < 30:
        return f"{diff_days} days ago"
    return format_datetime(timestamp)
