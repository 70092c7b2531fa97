# withdrawal_engine.py

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from config.expense_assumptions import gains_share_of_need
from models import AssetBuckets

logger = logging.getLogger(__name__)

# Amounts below a millionth of a dollar are rounding noise
EPSILON = 1e-6


@dataclass
class WithdrawalResult:
    from_cash: float = 0.0
    from_capital_gains: float = 0.0
    from_tax_deferred: float = 0.0
    from_tax_free: float = 0.0
    rmd: float = 0.0
    taxes: float = 0.0
    reinvested: float = 0.0
    shortfall: float = 0.0

    @property
    def gross(self) -> float:
        return self.from_cash + self.from_capital_gains + self.from_tax_deferred + self.from_tax_free

    @property
    def net_outflow(self) -> float:
        """What actually left the portfolio (gross less RMD proceeds put back in cash)."""
        return self.gross - self.reinvested


def effective_capital_gains_rate(
    net_need: float,
    other_income: float,
    filing_status: str,
    tax_fn: Callable[[float, float, str], float],
) -> float:
    """
    Average rate on the gains a year's withdrawals are expected to realize,
    with the gains stacked on the year's guaranteed income.
    """
    gains = net_need * gains_share_of_need
    if gains <= 0:
        return 0.0
    return tax_fn(gains, other_income, filing_status) / gains


class WithdrawalEngine:
    """
    Funds a year's net cash need from the owner-indexed buckets in tax-efficient order:
    cash, then taxable (tax on the gain portion only), then tax-deferred
    (fully taxed at the ordinary rate), then Roth last.
    """
    def __init__(self, ordinary_rate: float):
        self.ordinary_rate = ordinary_rate

    def _get_withdrawal_order(self) -> list:
        return ["cash_equivalents", "capital_gains", "tax_deferred", "tax_free"]

    @staticmethod
    def _take_pro_rata(buckets: Dict[str, AssetBuckets], kind: str, amount: float) -> Dict[str, float]:
        """Takes `amount` of one bucket kind across owners in proportion to their balances."""
        available = sum(b.balance(kind) for b in buckets.values())
        taken = {}
        if available <= 0 or amount <= 0:
            return taken
        drain_all = amount >= available
        for owner, b in buckets.items():
            balance = b.balance(kind)
            if balance <= 0:
                continue
            share = balance if drain_all else amount * balance / available
            taken[owner] = b.take(kind, share)
        return taken

    def withdraw(
        self,
        net_need: float,
        buckets: Dict[str, AssetBuckets],
        capital_gains_rate: float,
        rmd: float = 0.0,
        simulate_only: bool = False,
    ) -> WithdrawalResult:
        """
        The Core Engine: withdraws net_need (after-tax dollars) following the order above.

        Args:
            net_need: Spending the portfolio must cover after guaranteed income.
            buckets: Owner -> AssetBuckets, mutated in place unless simulate_only.
            capital_gains_rate: Effective rate applied to realized gains.
            rmd: Required minimum distribution to force out of tax-deferred first.
            simulate_only: If True, works on copies to estimate the withdrawal only.

        Returns:
            WithdrawalResult with the gross amount taken from each bucket,
            taxes, reinvested excess RMD and any unfunded shortfall.
        """
        working = buckets
        if simulate_only:
            working = {owner: b.copy() for owner, b in buckets.items()}

        remaining = max(0.0, net_need)
        result = WithdrawalResult()

        # --- 1. Required minimum distribution ---
        if rmd > 0:
            taken = self._take_pro_rata(working, "tax_deferred", rmd)
            gross_rmd = sum(taken.values())
            tax = gross_rmd * self.ordinary_rate
            net_rmd = gross_rmd - tax
            used = min(net_rmd, remaining)
            remaining -= used
            result.rmd = gross_rmd
            result.from_tax_deferred += gross_rmd
            result.taxes += tax

            # Excess RMD proceeds go back into the owners' cash
            excess = net_rmd - used
            if excess > EPSILON:
                for owner, amount in taken.items():
                    working[owner].add("cash_equivalents", excess * amount / gross_rmd)
                result.reinvested = excess

        for kind in self._get_withdrawal_order():
            if remaining <= EPSILON:
                break
            available = sum(b.balance(kind) for b in working.values())
            if available <= 0:
                continue

            if kind == "capital_gains":
                combined = AssetBuckets.combine(working.values())
                tax_rate = capital_gains_rate * combined.gain_fraction()
            elif kind == "tax_deferred":
                tax_rate = self.ordinary_rate
            else:
                tax_rate = 0.0

            gross_needed = remaining / (1.0 - tax_rate)
            gross = sum(self._take_pro_rata(working, kind, min(gross_needed, available)).values())
            tax = gross * tax_rate
            remaining -= gross - tax
            result.taxes += tax

            if kind == "cash_equivalents":
                result.from_cash += gross
            elif kind == "capital_gains":
                result.from_capital_gains += gross
            elif kind == "tax_deferred":
                result.from_tax_deferred += gross
            else:
                result.from_tax_free += gross

        if remaining > EPSILON:
            result.shortfall = remaining
            logger.debug("Withdrawal short by %.2f; all buckets exhausted", remaining)
        return result
