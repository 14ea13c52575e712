"""Request validation for ledger operations."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from wallet.modules.accounts import CENT, InvalidAmountError, SelfTransferNotAllowedError

AmountInput = Union[str, int, Decimal]


def parse_amount(raw: AmountInput, max_amount: Optional[Decimal] = None) -> Decimal:
    """Parse a transfer amount into a positive ``Decimal`` with two fractional digits.

    Mirrors the client's input mask: digits with an optional fractional part of
    at most two digits. Trailing zeros beyond the second digit are tolerated
    (``"12.340"`` is ``12.34``) but any further precision is rejected. Amounts
    above ``max_amount`` are rejected as well.
    """
    if isinstance(raw, bool) or raw is None:
        raise InvalidAmountError()
    if isinstance(raw, float):
        # Binary floats cannot carry an exact currency amount.
        raise InvalidAmountError("Amount must be given as a string or decimal, not a float.")
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError() from exc

    if not value.is_finite() or value <= 0:
        raise InvalidAmountError()
    try:
        quantized = value.quantize(CENT)
    except InvalidOperation as exc:
        raise InvalidAmountError() from exc
    if quantized != value:
        raise InvalidAmountError()
    if max_amount is not None and quantized > max_amount:
        raise InvalidAmountError(f"Amount must not exceed {max_amount}.")
    return quantized


def ensure_distinct_parties(sender_id: str, recipient_id: str) -> None:
    if sender_id == recipient_id:
        raise SelfTransferNotAllowedError()
