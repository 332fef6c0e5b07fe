"""
Tests for the matching pass: priority order, stock first, on-the-spot donors,
partial progress and idempotence.
"""

import copy
from datetime import date, timedelta

from lifelink.inventory import BloodInventory
from lifelink.matching import (
    FULFILLED_BY_DONORS,
    FULFILLED_FROM_INVENTORY,
    NO_DONORS,
    PARTIAL,
    find_candidate_donors,
    match_requests,
)

TODAY = date(2025, 6, 1)


def _request(request_id, blood_group, units, priority='normal', created_at='2025-05-01'):
    return {
        'request_id': request_id,
        'patient_name': f'Patient {request_id}',
        'blood_group': blood_group,
        'units_needed': units,
        'priority': priority,
        'created_at': created_at,
        'status': 'pending',
        'fulfilled_date': None,
    }


def _donor(donor_id, blood_group, last_donation=None, **overrides):
    donor = {
        'donor_id': donor_id,
        'name': f'Donor {donor_id}',
        'contact': '',
        'address': '',
        'blood_group': blood_group,
        'age': 30,
        'weight': 70.0,
        'last_donation': last_donation,
        'total_donations': 0,
    }
    donor.update(overrides)
    return donor


def _stock(blood_group, count, collected=TODAY - timedelta(days=5)):
    inv = BloodInventory()
    for _ in range(count):
        inv.add_unit(blood_group, collected)
    return inv


def test_fulfilled_from_inventory() -> None:
    """Critical O+ x2 with 3 O+ units on the shelf leaves 1 unit."""
    requests = {'R1': _request('R1', 'O+', 2, 'critical')}
    inv = _stock('O+', 3)

    outcomes = match_requests(requests, {}, inv, TODAY)

    assert outcomes[0]['outcome'] == FULFILLED_FROM_INVENTORY
    assert requests['R1']['status'] == 'fulfilled'
    assert requests['R1']['fulfilled_date'] == TODAY.isoformat()
    assert inv.count_available('O+', TODAY) == 1


def test_fulfilled_by_universal_donor() -> None:
    """AB- x1, empty shelf, one eligible O- donor."""
    requests = {'R1': _request('R1', 'AB-', 1)}
    donors = {'D1': _donor('D1', 'O-', total_donations=2)}
    inv = BloodInventory()

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert outcomes[0]['outcome'] == FULFILLED_BY_DONORS
    assert outcomes[0]['donors'] == ['D1']
    assert requests['R1']['status'] == 'fulfilled'
    assert donors['D1']['total_donations'] == 3
    assert donors['D1']['last_donation'] == TODAY.isoformat()
    # the donated unit went to the patient
    assert len(inv) == 0


def test_critical_served_before_older_normal() -> None:
    requests = {
        'R1': _request('R1', 'A+', 1, 'normal', created_at='2025-05-01'),
        'R2': _request('R2', 'A+', 1, 'critical', created_at='2025-05-20'),
    }
    inv = _stock('A+', 1)

    outcomes = match_requests(requests, {}, inv, TODAY)

    assert [o['request_id'] for o in outcomes] == ['R2', 'R1']
    assert requests['R2']['status'] == 'fulfilled'
    assert requests['R1']['status'] == 'pending'


def test_priority_then_creation_date() -> None:
    requests = {
        'R1': _request('R1', 'B+', 1, 'normal', created_at='2025-05-01'),
        'R2': _request('R2', 'B+', 1, 'urgent', created_at='2025-05-10'),
        'R3': _request('R3', 'B+', 1, 'urgent', created_at='2025-05-02'),
        'R4': _request('R4', 'B+', 1, 'critical', created_at='2025-05-30'),
    }
    outcomes = match_requests(requests, {}, BloodInventory(), TODAY)
    assert [o['request_id'] for o in outcomes] == ['R4', 'R3', 'R2', 'R1']


def test_fulfilled_requests_are_skipped() -> None:
    requests = {'R1': _request('R1', 'O+', 1)}
    requests['R1']['status'] = 'fulfilled'
    inv = _stock('O+', 1)
    assert match_requests(requests, {}, inv, TODAY) == []
    assert inv.count_available('O+', TODAY) == 1


def test_candidates_only_eligible_and_compatible() -> None:
    donors = {
        'D1': _donor('D1', 'A+'),                     # incompatible with O+
        'D2': _donor('D2', 'O+', age=70),             # too old
        'D3': _donor('D3', 'O-', last_donation='2025-05-01'),  # cooling down
        'D4': _donor('D4', 'O+'),
        'D5': _donor('D5', 'O-', weight=40.0),        # underweight
    }
    assert [d['donor_id'] for d in find_candidate_donors(donors, 'O+', TODAY)] == ['D4']


def test_candidates_most_rested_first() -> None:
    donors = {
        'D1': _donor('D1', 'O+', last_donation='2025-01-15'),
        'D2': _donor('D2', 'O+', last_donation='2024-06-01'),
        'D3': _donor('D3', 'O+'),
        'D4': _donor('D4', 'O-', last_donation='2024-12-01'),
    }
    ordered = [d['donor_id'] for d in find_candidate_donors(donors, 'O+', TODAY)]
    assert ordered == ['D3', 'D2', 'D4', 'D1']


def test_walk_stops_when_need_is_met() -> None:
    requests = {'R1': _request('R1', 'B+', 2)}
    donors = {
        'D1': _donor('D1', 'B+'),
        'D2': _donor('D2', 'B+', last_donation='2024-01-01'),
        'D3': _donor('D3', 'B+', last_donation='2024-02-01'),
    }
    inv = BloodInventory()

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert outcomes[0]['donors'] == ['D1', 'D2']
    assert donors['D3']['total_donations'] == 0
    assert requests['R1']['status'] == 'fulfilled'
    assert len(inv) == 0


def test_stock_counts_towards_donor_solicitation() -> None:
    """One unit on the shelf plus one donor closes a two-unit request."""
    requests = {'R1': _request('R1', 'A-', 2)}
    donors = {'D1': _donor('D1', 'A-'), 'D2': _donor('D2', 'A-')}
    inv = _stock('A-', 1)

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert outcomes[0]['outcome'] == FULFILLED_BY_DONORS
    assert outcomes[0]['donors'] == ['D1']
    assert donors['D2']['total_donations'] == 0
    assert len(inv) == 0


def test_partial_progress_is_committed_but_request_stays_pending() -> None:
    """
    Donors who gave towards an unfinished request stay used up and their
    units stay in stock, while the request remains pending.
    """
    requests = {'R1': _request('R1', 'AB+', 3, 'urgent')}
    donors = {'D1': _donor('D1', 'A+'), 'D2': _donor('D2', 'O-')}
    inv = BloodInventory()

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert outcomes[0]['outcome'] == PARTIAL
    assert requests['R1']['status'] == 'pending'
    assert requests['R1']['fulfilled_date'] is None
    assert donors['D1']['total_donations'] == 1
    assert donors['D2']['last_donation'] == TODAY.isoformat()
    assert inv.count_available('A+', TODAY) == 1
    assert inv.count_available('O-', TODAY) == 1


def test_no_donors_no_side_effects() -> None:
    requests = {'R1': _request('R1', 'O-', 1)}
    donors = {'D1': _donor('D1', 'A+'), 'D2': _donor('D2', 'O-', age=16)}
    inv = _stock('A+', 2)
    before = (copy.deepcopy(requests), copy.deepcopy(donors), copy.deepcopy(inv.units))

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert outcomes[0]['outcome'] == NO_DONORS
    assert (requests, donors, inv.units) == before


def test_expired_stock_is_pruned_and_not_used() -> None:
    requests = {'R1': _request('R1', 'O+', 1)}
    inv = _stock('O+', 2, collected=TODAY - timedelta(days=60))

    outcomes = match_requests(requests, {}, inv, TODAY)

    assert outcomes[0]['outcome'] == NO_DONORS
    assert requests['R1']['status'] == 'pending'
    assert len(inv) == 0


def test_second_pass_changes_nothing() -> None:
    requests = {
        'R1': _request('R1', 'O+', 2, 'critical'),
        'R2': _request('R2', 'AB+', 4, 'normal'),
        'R3': _request('R3', 'B-', 1, 'urgent'),
    }
    donors = {
        'D1': _donor('D1', 'O+'),
        'D2': _donor('D2', 'A-'),
        'D3': _donor('D3', 'B+', last_donation='2025-05-15'),
    }
    inv = _stock('O+', 1)
    inv.add_unit('B+', TODAY - timedelta(days=3))

    match_requests(requests, donors, inv, TODAY)
    after_first = (copy.deepcopy(requests), copy.deepcopy(donors), copy.deepcopy(inv.units))
    match_requests(requests, donors, inv, TODAY)

    assert (requests, donors, inv.units) == after_first


def test_cross_group_donation_leaves_older_reserve_alone() -> None:
    """
    An O- donor tops up an A+ request: the pass takes the A+ unit on the
    shelf and the fresh O- unit, not the older O- reserve, which then
    covers the O- request later in the same pass.
    """
    requests = {
        'R1': _request('R1', 'A+', 2, 'critical'),
        'R2': _request('R2', 'O-', 3, 'normal'),
    }
    donors = {'D1': _donor('D1', 'O-')}
    inv = _stock('A+', 1, collected=TODAY - timedelta(days=5))
    for _ in range(3):
        inv.add_unit('O-', TODAY - timedelta(days=20))

    outcomes = match_requests(requests, donors, inv, TODAY)

    assert [(o['request_id'], o['outcome']) for o in outcomes] == [
        ('R1', FULFILLED_BY_DONORS),
        ('R2', FULFILLED_FROM_INVENTORY),
    ]
    assert outcomes[0]['donors'] == ['D1']
    assert requests['R2']['status'] == 'fulfilled'
    assert len(inv) == 0


def test_cross_group_donation_consumes_only_the_collected_unit() -> None:
    requests = {'R1': _request('R1', 'AB+', 1)}
    donors = {'D1': _donor('D1', 'B+')}
    inv = _stock('B+', 2, collected=TODAY - timedelta(days=30))

    match_requests(requests, donors, inv, TODAY)

    assert requests['R1']['status'] == 'fulfilled'
    assert [u['donor_id'] for u in inv.units] == [None, None]
    assert inv.count_available('B+', TODAY) == 2
