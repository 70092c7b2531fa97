# income_calculator.py
#
# Guaranteed income for one simulated year (Social Security, pension,
# part-time work, annuities), including survivor benefits.
#

from typing import Optional

from models import Household, Person


def _own_social_security(person: Person, age: int) -> float:
    inc = person.income
    return inc.social_security if age >= inc.ss_claim_age else 0.0


def _own_pension(person: Person, age: int) -> float:
    return person.income.pension if age >= person.retirement_age else 0.0


def _part_time(person: Person, age: int) -> float:
    inc = person.income
    if age < person.retirement_age:
        return 0.0
    if inc.part_time_end_age is not None and age >= inc.part_time_end_age:
        return 0.0
    return inc.part_time_income


def person_income(person: Person, age: int) -> float:
    """A living person's own guaranteed income at `age`."""
    return _own_social_security(person, age) + _own_pension(person, age) + _part_time(person, age)


def survivor_income(survivor: Person, survivor_age: int, deceased: Person, deceased_age: int) -> float:
    """
    Extra income a widow(er) receives. Once the deceased would have reached their
    claim age, the survivor is topped up to the deceased's Social Security when it is
    larger than their own (own counts only once the survivor has claimed). The
    survivor share of the deceased's pension continues from the deceased's retirement age.
    """
    extra = 0.0
    if deceased_age >= deceased.income.ss_claim_age:
        own = _own_social_security(survivor, survivor_age)
        extra += max(deceased.income.social_security - own, 0.0)
    if deceased_age >= deceased.retirement_age:
        extra += deceased.income.pension * deceased.income.pension_survivor_pct
    return extra


def calculate_guaranteed_income(
    household: Household,
    user_age: int,
    user_alive: bool,
    spouse_age: Optional[int] = None,
    spouse_alive: bool = False,
) -> float:
    """
    Total guaranteed income for the year.

    Args:
        household: The household (income figures per person).
        user_age, spouse_age: Ages this year. Ages keep advancing after death.
        user_alive, spouse_alive: Alive flags at the start of the year.

    Returns:
        float: Combined annual guaranteed income; 0 once nobody is alive.
    """
    spouse = household.spouse
    if spouse is None:
        spouse_alive = False

    if not (user_alive or spouse_alive):
        return 0.0

    total = household.annuity_income
    if user_alive:
        total += person_income(household.user, user_age)
    if spouse_alive:
        total += person_income(spouse, spouse_age)

    if spouse is not None:
        if user_alive and not spouse_alive:
            total += survivor_income(household.user, user_age, spouse, spouse_age)
        elif spouse_alive and not user_alive:
            total += survivor_income(spouse, spouse_age, household.user, user_age)
    return total
