# engine/asset_buckets.py
#
# Classifies a household's assets into the four tax-treatment buckets, per owner.
# Annuities become guaranteed income unless they are deferred and not yet paying.
#

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from config.expense_assumptions import default_gain_ratio
from engine.errors import InvalidParameter
from models import AssetBuckets

logger = logging.getLogger(__name__)

# Tag -> bucket. None means the asset is deliberately left out of the portfolio.
ASSET_TYPE_BUCKETS: Dict[str, Optional[str]] = {
    # Tax-deferred
    "401k": "tax_deferred",
    "403b": "tax_deferred",
    "traditional-ira": "tax_deferred",
    "other-tax-deferred": "tax_deferred",
    "hsa": "tax_deferred",
    # Tax-free
    "roth-ira": "tax_free",
    # Capital gains
    "taxable-brokerage": "capital_gains",
    "brokerage": "capital_gains",
    "cash-value-life-insurance": "capital_gains",
    # Cash equivalents
    "savings": "cash_equivalents",
    "money-market": "cash_equivalents",
    "cd": "cash_equivalents",
    "other": "cash_equivalents",
    # Excluded
    "checking": None,
    "vehicle": None,
    "business": None,
    "real-estate": None,
}

# Annuity tag -> bucket used when the contract is still a placeholder asset
ANNUITY_TYPE_BUCKETS: Dict[str, str] = {
    "qualified-annuities": "tax_deferred",
    "non-qualified-annuities": "capital_gains",
    "roth-annuities": "tax_free",
}

TYPE_ALIASES = {
    "traditional": "traditional-ira",
    "ira": "traditional-ira",
    "roth": "roth-ira",
    "brokerage-account": "brokerage",
    "taxable": "taxable-brokerage",
    "savings-account": "savings",
    "saving-account": "savings",
    "money-market-account": "money-market",
    "certificate-of-deposit": "cd",
    "checking-account": "checking",
    "qualified-annuity": "qualified-annuities",
    "non-qualified-annuity": "non-qualified-annuities",
    "roth-annuity": "roth-annuities",
}

OWNER_ALIASES = {
    "user": "user", "self": "user", "primary": "user", "person1": "user",
    "spouse": "spouse", "partner": "spouse", "person2": "spouse",
    "joint": "joint", "both": "joint",
}

PAYOUTS_PER_YEAR = {"monthly": 12, "quarterly": 4, "semi-annually": 2, "annually": 1, "annual": 1}


def normalize_asset_type(raw: Any) -> str:
    """'401(k)' -> '401k', 'Traditional IRA' -> 'traditional-ira'."""
    tag = str(raw or "").strip().lower()
    tag = tag.replace("(", "").replace(")", "")
    tag = re.sub(r"[\s_]+", "-", tag)
    return TYPE_ALIASES.get(tag, tag)


def normalize_owner(raw: Any) -> str:
    key = str(raw or "user").strip().lower()
    if key not in OWNER_ALIASES:
        raise InvalidParameter("asset.owner", f"unknown owner {raw!r}")
    return OWNER_ALIASES[key]


def annual_payout(amount: float, frequency: str = "monthly") -> float:
    per_year = PAYOUTS_PER_YEAR.get(str(frequency).lower())
    if per_year is None:
        raise InvalidParameter("annuity.payout_frequency", f"unknown frequency {frequency!r}")
    return amount * per_year


@dataclass
class BucketingResult:
    buckets: Dict[str, AssetBuckets] = field(default_factory=dict)
    annuity_income: float = 0.0
    excluded_value: float = 0.0

    @property
    def combined(self) -> AssetBuckets:
        return AssetBuckets.combine(self.buckets.values())

    def owner(self, owner: str) -> AssetBuckets:
        return self.buckets.setdefault(owner, AssetBuckets())


def classify_assets(assets: Iterable[Mapping[str, Any]]) -> BucketingResult:
    """
    Sorts assets into per-owner buckets.

    Each asset is a mapping with `type`, `owner` and `value`. Optional keys:
    `cost_basis` for taxable accounts, and for annuities `annuity_type`
    ('immediate' or 'deferred'), `payout_started`, `payout_amount` and
    `payout_frequency`.

    Returns:
        BucketingResult with buckets keyed by owner ('user', 'spouse', 'joint')
        and the annual income from annuities that are already paying.
    """
    result = BucketingResult()

    for asset in assets:
        asset_type = normalize_asset_type(asset.get("type"))
        owner = normalize_owner(asset.get("owner"))
        value = float(asset.get("value") or 0.0)
        if value < 0:
            raise InvalidParameter(f"asset.{asset_type}.value", f"negative balance {value}")

        # --- Annuities: income stream or placeholder asset ---
        if asset_type in ANNUITY_TYPE_BUCKETS:
            kind = str(asset.get("annuity_type") or "immediate").lower()
            paying = kind == "immediate" or bool(asset.get("payout_started"))
            if paying:
                amount = float(asset.get("payout_amount") or 0.0)
                result.annuity_income += annual_payout(amount, asset.get("payout_frequency") or "monthly")
            else:
                result.owner(owner).add(ANNUITY_TYPE_BUCKETS[asset_type], value)
            continue

        if asset_type not in ASSET_TYPE_BUCKETS:
            raise InvalidParameter("asset.type", f"unknown asset type {asset.get('type')!r}")

        bucket = ASSET_TYPE_BUCKETS[asset_type]
        if bucket is None:
            result.excluded_value += value
            continue

        basis = None
        if bucket == "capital_gains":
            basis = asset.get("cost_basis")
            basis = value * (1 - default_gain_ratio) if basis is None else float(basis)
        result.owner(owner).add(bucket, value, basis=basis)

    logger.debug(
        "Bucketed %d owners, %.0f in assets, %.0f excluded, %.0f/yr annuity income",
        len(result.buckets), result.combined.total_assets, result.excluded_value, result.annuity_income,
    )
    return result
