"""Verification amount allocation and exact lamport conversion.

The amount a user is asked to send is the verification secret, so it is drawn
from a CSPRNG over a deliberately tiny range. Conversions go through
``Decimal`` only; a float never touches an amount.
"""

from __future__ import annotations

import secrets
from decimal import Decimal, InvalidOperation
from typing import Callable, Collection, Union

LAMPORTS_PER_SOL = 1_000_000_000
AMOUNT_DECIMALS = 9
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMALS)

DEFAULT_MIN_LAMPORTS = 10
DEFAULT_MAX_LAMPORTS = 10_000


def lamports_to_amount(lamports: int) -> Decimal:
    """Convert lamports to a SOL amount with full smallest-unit precision."""
    return (Decimal(lamports) / LAMPORTS_PER_SOL).quantize(AMOUNT_QUANTUM)


def amount_to_lamports(amount: Union[Decimal, str]) -> int:
    """Convert a SOL amount to lamports, rejecting sub-lamport precision."""
    try:
        value = Decimal(amount) if isinstance(amount, str) else amount
        scaled = value * LAMPORTS_PER_SOL
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e
    if not scaled.is_finite() or scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} is not a whole number of lamports")
    return int(scaled)


def format_amount(amount: Decimal) -> str:
    """Render an amount in fixed-point notation, never scientific."""
    return format(amount.quantize(AMOUNT_QUANTUM), "f")


def allocate_lamports(
    min_lamports: int = DEFAULT_MIN_LAMPORTS,
    max_lamports: int = DEFAULT_MAX_LAMPORTS,
    exclude: Collection[int] = (),
    attempts: int = 1,
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> int:
    """Draw a verification amount in lamports from ``[min_lamports, max_lamports]``.

    With ``attempts > 1`` a draw that hits ``exclude`` is redrawn; when every
    attempt collides the last draw is returned anyway, so uniqueness stays
    probabilistic.
    """
    if min_lamports <= 0:
        raise ValueError("min_lamports must be positive")
    if max_lamports < min_lamports:
        raise ValueError("max_lamports must be >= min_lamports")

    span = max_lamports - min_lamports + 1
    lamports = min_lamports + randbelow(span)
    for _ in range(max(attempts, 1) - 1):
        if lamports not in exclude:
            break
        lamports = min_lamports + randbelow(span)
    return lamports
