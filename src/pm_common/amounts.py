"""Float stake/pool helpers.

Stakes, pools and payouts are floats (DOUBLE PRECISION in the DB): the
pari-mutuel payout formula is defined in floating point, so results are
compared with a tolerance rather than exactly.
"""

import math

AMOUNT_TOLERANCE = 1e-9


def is_valid_stake(amount: object) -> bool:
    """A stake must be a finite real number strictly greater than zero."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return math.isfinite(amount) and amount > 0


def amounts_equal(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=AMOUNT_TOLERANCE, abs_tol=AMOUNT_TOLERANCE)


def format_amount(amount: float) -> str:
    """Display form used in chat messages: 14 -> '14.00', 1234.5 -> '1,234.50'."""
    return f"{amount:,.2f}"


def pool_percentages(up_pool: float, down_pool: float) -> tuple[float, float]:
    """Return (up_pct, down_pct) rounded to 2 dp; an empty market reads 50/50."""
    total = up_pool + down_pool
    if total <= 0:
        return 50.0, 50.0
    up_pct = round(up_pool / total * 100, 2)
    return up_pct, round(100 - up_pct, 2)
