# utils/ss_utils.py
import math

EARLIEST_CLAIM_AGE = 62
LATEST_CLAIM_AGE = 70


def get_full_retirement_age(birth_year: int, birth_month: int = 1) -> float:
    """
    Full Retirement Age (FRA) in years under SSA rules, by birth year and month.
    People born on January 1st use the previous year's FRA; birth_month=1 stands in for that here.
    """
    year = birth_year - 1 if birth_month == 1 else birth_year

    if year <= 1937:
        return 65.0
    elif year <= 1942:
        # 65 plus 2 months per year after 1937
        return 65.0 + (year - 1937) * 2 / 12.0
    elif year <= 1954:
        return 66.0
    elif year <= 1959:
        # 66 plus 2 months per year after 1954
        return 66.0 + (year - 1954) * 2 / 12.0
    return 67.0


def default_claim_age(birth_year: int, birth_month: int = 1) -> int:
    """Whole-year claim age used when the household gives none: FRA rounded up."""
    fra = get_full_retirement_age(birth_year, birth_month)
    return min(LATEST_CLAIM_AGE, max(EARLIEST_CLAIM_AGE, int(math.ceil(fra))))
