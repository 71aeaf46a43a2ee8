"""Pari-mutuel settlement: pure computation, no I/O.

    total        = up_pool + down_pool
    winners_pool = pool of the winning side
    distributable = total * (1 - fee)
    multiplier   = distributable / winners_pool
    payout       = stake * multiplier            (winning stakes only)

Sum of payouts never exceeds `distributable` (equal up to float rounding).
The multiplier is unbounded: a tiny winning pool yields a large multiplier.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from src.pm_common.enums import BetSettlement, Side
from src.pm_market.domain.models import Bet, BetPayout


@dataclass(frozen=True)
class SettlementResult:
    winning_side: str
    total_pool: float
    winners_pool: float
    losers_pool: float
    distributable: float
    multiplier: float | None
    payouts: list[BetPayout]

    @property
    def total_paid(self) -> float:
        return sum(p.payout for p in self.payouts if p.payout is not None)

    @property
    def house_take(self) -> float:
        return self.total_pool - self.total_paid


def _validate_fee(fee: float) -> None:
    if not (0 <= fee < 1):
        raise ValueError(f"fee must satisfy 0 <= fee < 1, got {fee}")


def compute_settlement(
    up_pool: float,
    down_pool: float,
    winning_side: str,
    bets: Iterable[Bet],
    fee: float,
    refund_when_no_winners: bool = False,
) -> SettlementResult:
    """Decide every stake's settlement for a market resolved as `winning_side`.

    No winners (winning pool empty): by default every stake is LOST and
    nothing is paid. With `refund_when_no_winners` every stake is REFUNDED
    at face value instead.
    """
    _validate_fee(fee)
    side = Side(winning_side)
    total = up_pool + down_pool
    winners_pool = up_pool if side is Side.UP else down_pool
    losers_pool = total - winners_pool

    if winners_pool <= 0:
        if refund_when_no_winners:
            payouts = [
                _decision(bet, BetSettlement.REFUNDED, bet.stake) for bet in bets
            ]
            distributable = total
        else:
            payouts = [_decision(bet, BetSettlement.LOST, None) for bet in bets]
            distributable = 0.0
        return SettlementResult(
            winning_side=side.value,
            total_pool=total,
            winners_pool=winners_pool,
            losers_pool=losers_pool,
            distributable=distributable,
            multiplier=None,
            payouts=payouts,
        )

    distributable = total * (1 - fee)
    multiplier = distributable / winners_pool
    payouts = [
        _decision(bet, BetSettlement.WON, bet.stake * multiplier)
        if bet.side == side.value
        else _decision(bet, BetSettlement.LOST, None)
        for bet in bets
    ]
    return SettlementResult(
        winning_side=side.value,
        total_pool=total,
        winners_pool=winners_pool,
        losers_pool=losers_pool,
        distributable=distributable,
        multiplier=multiplier,
        payouts=payouts,
    )


def implied_multiplier(side_pool: float, total_pool: float, fee: float) -> float | None:
    """Multiplier a side would pay if the market resolved now; None if the side is empty."""
    _validate_fee(fee)
    if side_pool <= 0:
        return None
    return total_pool * (1 - fee) / side_pool


def _decision(bet: Bet, settlement: BetSettlement, payout: float | None) -> BetPayout:
    return BetPayout(
        bet_id=bet.id,
        user_id=bet.user_id,
        side=bet.side,
        stake=bet.stake,
        settlement=settlement.value,
        payout=payout,
    )
