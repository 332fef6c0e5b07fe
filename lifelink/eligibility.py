"""
Donor eligibility rules.

A donor may give blood when aged 18-65 (inclusive), weighing at least 50 kg,
and at least 90 days have passed since their last donation. A missing or
malformed last-donation date puts no constraint on the donor.
"""

from datetime import timedelta

from lifelink.dates import days_between, parse_date

MIN_AGE = 18
MAX_AGE = 65
MIN_WEIGHT_KG = 50.0
DONATION_INTERVAL_DAYS = 90


def eligibility_issues(donor, today):
    """Reasons the donor cannot donate today; empty list when eligible"""
    issues = []

    age = donor.get('age') or 0
    if age < MIN_AGE or age > MAX_AGE:
        issues.append(f'Age {age} is outside {MIN_AGE}-{MAX_AGE} years')

    weight = donor.get('weight') or 0.0
    if weight < MIN_WEIGHT_KG:
        issues.append(f'Weight {weight:g}kg is below {MIN_WEIGHT_KG:g}kg')

    gap = days_between(donor.get('last_donation'), today)
    if gap is not None and gap < DONATION_INTERVAL_DAYS:
        issues.append(
            f'Last donation was {gap} day(s) ago; '
            f'{DONATION_INTERVAL_DAYS} days are required between donations'
        )

    return issues


def is_eligible(donor, today):
    """Check if donor can donate on the given day"""
    return not eligibility_issues(donor, today)


def next_eligible_date(donor, today):
    """First day the cooldown allows another donation (today if never donated)"""
    last = parse_date(donor.get('last_donation'))
    if last is None:
        return parse_date(today)
    return last + timedelta(days=DONATION_INTERVAL_DAYS)
