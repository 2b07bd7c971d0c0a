"""ABI encoding for the handful of contract reads the dashboard makes."""

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

# 4-byte selectors (first 4 bytes of keccak256 of the signature)
ERC20_SELECTORS = {
    "balanceOf": "0x70a08231",  # balanceOf(address)
    "decimals": "0x313ce567",  # decimals()
    "symbol": "0x95d89b41",  # symbol()
    "name": "0x06fdde03",  # name()
}

GET_USER_ACCOUNT_DATA = "0xbf92857c"  # getUserAccountData(address)

# totalCollateralBase, totalDebtBase, availableBorrowsBase,
# currentLiquidationThreshold, ltv, healthFactor
USER_ACCOUNT_DATA_TYPES = ["uint256"] * 6


def encode_call(selector: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> str:
    """
    Build 0x-prefixed call data.

    Parameters
    ----------
    selector : str
        0x-prefixed 4-byte function selector
    arg_types : Sequence[str]
        ABI types of the arguments
    args : Sequence[Any]
        Argument values

    Returns
    -------
    str
        Call data for ``eth_call``

    """
    encoded = encode(list(arg_types), list(args)).hex() if arg_types else ""
    return selector + encoded


def decode_result(types: Sequence[str], data: str) -> tuple[Any, ...]:
    """Decode 0x-prefixed return data into a tuple of values."""
    return decode(list(types), _to_bytes(data))


def decode_string(data: str) -> str:
    """
    Decode a ``string`` return value.

    Falls back to ``bytes32`` for legacy tokens (e.g., MKR) that return a
    fixed-size symbol/name.

    Raises
    ------
    ValueError
        If the data is neither encoding

    """
    raw = _to_bytes(data)
    try:
        return decode(["string"], raw)[0]
    except (DecodingError, OverflowError, ValueError):
        if len(raw) != 32:
            msg = "return data is neither string nor bytes32"
            raise ValueError(msg) from None
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def _to_bytes(data: str) -> bytes:
    if not data or data == "0x":
        msg = "empty return data"
        raise ValueError(msg)
    return bytes.fromhex(data[2:] if data.startswith("0x") else data)
