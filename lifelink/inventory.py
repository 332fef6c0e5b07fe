"""
Blood inventory ledger.

Stock is kept per unit rather than as a counter per group so that every unit
carries its own collection and expiry date. A unit collected on day D expires
on D + SHELF_LIFE_DAYS and is never counted or handed out from that day on,
whether or not it has been pruned yet.
"""

from lifelink.compatibility import BLOOD_GROUPS
from lifelink.dates import add_days, days_between, format_date, parse_date
from lifelink.logger import get_logger

logger = get_logger('inventory')

SHELF_LIFE_DAYS = 42
LOW_STOCK_THRESHOLD = 5


def is_expired(unit, today):
    """Unreadable collection dates count as expired"""
    age = days_between(unit.get('collected_date'), today)
    return age is None or age >= SHELF_LIFE_DAYS


def _collection_key(unit):
    # unreadable dates sort first; they are expired and never consumed anyway
    return parse_date(unit.get('collected_date')) or parse_date('0001-01-01')


class BloodInventory:
    """Unordered collection of blood units with expiry-aware accounting"""

    def __init__(self, units=None):
        self.units = list(units or [])

    def __len__(self):
        return len(self.units)

    def add_unit(self, blood_group, collected_date, donor_id=None):
        """Append one unit; its expiry date is always collection + shelf life"""
        unit = {
            'blood_group': blood_group,
            'collected_date': format_date(collected_date),
            'expiry_date': format_date(add_days(collected_date, SHELF_LIFE_DAYS)),
            'donor_id': donor_id or None,
        }
        self.units.append(unit)
        return unit

    def available_units(self, blood_group, today):
        return [
            u for u in self.units
            if u['blood_group'] == blood_group and not is_expired(u, today)
        ]

    def count_available(self, blood_group, today):
        """Count units of the group that are still within their shelf life"""
        return len(self.available_units(blood_group, today))

    def consume(self, blood_group, count, today):
        """
        Remove up to `count` usable units of `blood_group`, oldest collection
        date first. Returns the number actually removed, which may be less
        than requested.
        """
        return self.consume_any([blood_group], count, today)

    def consume_any(self, blood_groups, count, today):
        """Like consume(), drawing oldest-first from any of several groups"""
        if count <= 0:
            return 0
        candidates = [
            u for u in self.units
            if u['blood_group'] in blood_groups and not is_expired(u, today)
        ]
        # sorted() is stable, so units collected on the same day go in ledger order
        taken = sorted(candidates, key=_collection_key)[:count]
        taken_ids = {id(u) for u in taken}
        self.units = [u for u in self.units if id(u) not in taken_ids]
        return len(taken)

    def remove_units(self, units):
        """Remove these exact unit records (matched by identity); returns the count removed"""
        doomed = {id(u) for u in units}
        before = len(self.units)
        self.units = [u for u in self.units if id(u) not in doomed]
        return before - len(self.units)

    def prune_expired(self, today):
        """Drop every expired unit; returns how many were removed"""
        before = len(self.units)
        self.units = [u for u in self.units if not is_expired(u, today)]
        removed = before - len(self.units)
        if removed:
            logger.info('Pruned %d expired unit(s)', removed)
        return removed

    def summary(self, today):
        """Available units per blood group (all 8 groups, expired units excluded)"""
        counts = {bg: 0 for bg in BLOOD_GROUPS}
        for unit in self.units:
            if unit['blood_group'] in counts and not is_expired(unit, today):
                counts[unit['blood_group']] += 1
        return counts

    def total_available(self, today):
        return sum(self.summary(today).values())

    def low_stock(self, today, threshold=LOW_STOCK_THRESHOLD):
        """Blood groups whose available count is below the threshold"""
        return {bg: n for bg, n in self.summary(today).items() if n < threshold}
