"""
Tests for the inventory ledger: shelf life, oldest-first consumption, pruning.
"""

from datetime import date, timedelta

from lifelink.compatibility import BLOOD_GROUPS
from lifelink.inventory import SHELF_LIFE_DAYS, BloodInventory

DAY = date(2025, 1, 1)


def test_expiry_is_collection_plus_shelf_life() -> None:
    inv = BloodInventory()
    unit = inv.add_unit('A+', DAY, 'D1')
    assert unit['collected_date'] == '2025-01-01'
    assert unit['expiry_date'] == (DAY + timedelta(days=SHELF_LIFE_DAYS)).isoformat()
    assert unit['donor_id'] == 'D1'


def test_unit_counted_on_day_41_not_day_42() -> None:
    inv = BloodInventory()
    inv.add_unit('O+', DAY)
    assert inv.count_available('O+', DAY + timedelta(days=41)) == 1
    assert inv.count_available('O+', DAY + timedelta(days=42)) == 0
    # counting does not delete
    assert len(inv) == 1


def test_count_is_per_group() -> None:
    inv = BloodInventory()
    inv.add_unit('O+', DAY)
    inv.add_unit('O+', DAY)
    inv.add_unit('O-', DAY)
    assert inv.count_available('O+', DAY) == 2
    assert inv.count_available('O-', DAY) == 1
    assert inv.count_available('AB-', DAY) == 0


def test_consume_takes_oldest_first() -> None:
    """Units added out of order are still consumed by collection date."""
    inv = BloodInventory()
    inv.add_unit('B+', date(2025, 1, 20), 'newest')
    inv.add_unit('B+', date(2025, 1, 5), 'oldest')
    inv.add_unit('B+', date(2025, 1, 12), 'middle')
    today = date(2025, 1, 25)

    assert inv.consume('B+', 1, today) == 1
    assert sorted(u['donor_id'] for u in inv.units) == ['middle', 'newest']
    assert inv.consume('B+', 1, today) == 1
    assert [u['donor_id'] for u in inv.units] == ['newest']


def test_consume_returns_what_was_actually_removed() -> None:
    inv = BloodInventory()
    inv.add_unit('A-', DAY)
    inv.add_unit('A-', DAY)
    inv.add_unit('A+', DAY)
    assert inv.consume('A-', 5, DAY) == 2
    assert inv.count_available('A-', DAY) == 0
    assert inv.count_available('A+', DAY) == 1
    assert inv.consume('A-', 0, DAY) == 0


def test_consume_skips_expired_units() -> None:
    inv = BloodInventory()
    inv.add_unit('O-', DAY)
    inv.add_unit('O-', DAY + timedelta(days=30))
    today = DAY + timedelta(days=45)
    assert inv.consume('O-', 2, today) == 1
    # the expired unit is still physically there until pruned
    assert len(inv) == 1
    assert inv.count_available('O-', today) == 0


def test_consume_any_draws_across_groups_oldest_first() -> None:
    inv = BloodInventory()
    inv.add_unit('AB-', date(2025, 1, 10), 'ab')
    inv.add_unit('O-', date(2025, 1, 3), 'o')
    inv.add_unit('A-', date(2025, 1, 1), 'a')
    removed = inv.consume_any({'AB-', 'O-'}, 1, date(2025, 1, 15))
    assert removed == 1
    assert sorted(u['donor_id'] for u in inv.units) == ['a', 'ab']


def test_prune_expired_is_idempotent() -> None:
    inv = BloodInventory()
    inv.add_unit('A+', DAY)
    inv.add_unit('A+', DAY + timedelta(days=10))
    today = DAY + timedelta(days=42)
    assert inv.prune_expired(today) == 1
    assert inv.prune_expired(today) == 0
    assert len(inv) == 1


def test_unreadable_collection_date_is_never_available() -> None:
    inv = BloodInventory([{'blood_group': 'A+', 'collected_date': 'garbage',
                           'expiry_date': '', 'donor_id': None}])
    assert inv.count_available('A+', DAY) == 0
    assert inv.prune_expired(DAY) == 1


def test_summary_and_low_stock() -> None:
    inv = BloodInventory()
    for _ in range(6):
        inv.add_unit('O+', DAY)
    inv.add_unit('A+', DAY - timedelta(days=50))  # expired
    inv.add_unit('B-', DAY)

    summary = inv.summary(DAY)
    assert set(summary) == set(BLOOD_GROUPS)
    assert summary['O+'] == 6
    assert summary['A+'] == 0
    assert summary['B-'] == 1
    assert inv.total_available(DAY) == 7

    low = inv.low_stock(DAY, threshold=5)
    assert 'O+' not in low
    assert low['B-'] == 1
    assert low['A+'] == 0


def test_remove_units_takes_exactly_the_given_records() -> None:
    inv = BloodInventory()
    inv.add_unit('O-', DAY)
    fresh = inv.add_unit('O-', DAY + timedelta(days=5), 'D1')
    assert inv.remove_units([fresh]) == 1
    assert [u['donor_id'] for u in inv.units] == [None]
    assert inv.remove_units([fresh]) == 0
