"""
Blood matching algorithm.

One pass walks every pending request in priority order (critical, urgent,
normal; older requests first within a priority) and tries to close it, first
from stock of the exact blood group and otherwise by calling in eligible,
compatible donors to give one unit each on the spot.

A request is only ever marked fulfilled in full. When the available donors
cannot cover the whole need, the units they gave stay in the inventory and
their donation dates stay updated while the request remains pending. The
pass is idempotent: run again with no new requests, donors or stock, it
changes nothing.
"""

from lifelink.compatibility import is_compatible
from lifelink.dates import format_date, parse_date
from lifelink.eligibility import is_eligible
from lifelink.logger import get_logger
from lifelink.registry import PRIORITY_ORDER, STATUS_FULFILLED, apply_donation, pending_requests

logger = get_logger('matching')

FULFILLED_FROM_INVENTORY = 'inventory'
FULFILLED_BY_DONORS = 'donors'
PARTIAL = 'partial'
NO_DONORS = 'no_donors'


def request_sort_key(request):
    """Critical before urgent before normal, then oldest request first"""
    return (
        PRIORITY_ORDER.get(request.get('priority'), len(PRIORITY_ORDER)),
        parse_date(request.get('created_at')) or parse_date('9999-12-31'),
    )


def donor_sort_key(donor):
    # never donated -> first in line; then the longest time since last donation
    last = parse_date(donor.get('last_donation'))
    return (last is not None, last or parse_date('0001-01-01'))


def find_candidate_donors(donors, blood_group, today):
    """Eligible donors whose blood can go to blood_group, most rested first"""
    candidates = [
        d for d in donors.values()
        if is_eligible(d, today) and is_compatible(d['blood_group'], blood_group)
    ]
    return sorted(candidates, key=donor_sort_key)


def _mark_fulfilled(request, today):
    request['status'] = STATUS_FULFILLED
    request['fulfilled_date'] = format_date(today)


def match_request(request, donors, inventory, today):
    """Try to close a single pending request; returns an outcome dict"""
    blood_group = request['blood_group']
    units_needed = request['units_needed']
    outcome = {'request_id': request['request_id'], 'donors': []}

    inventory.prune_expired(today)
    available = inventory.count_available(blood_group, today)
    if available >= units_needed:
        inventory.consume(blood_group, units_needed, today)
        _mark_fulfilled(request, today)
        logger.info('Request %s fulfilled from inventory (%s x%d)',
                    request['request_id'], blood_group, units_needed)
        outcome['outcome'] = FULFILLED_FROM_INVENTORY
        return outcome

    candidates = find_candidate_donors(donors, blood_group, today)
    if not candidates:
        logger.info('No eligible donors currently for request %s', request['request_id'])
        outcome['outcome'] = NO_DONORS
        return outcome

    # stock already on the shelf counts towards the request
    needed = units_needed - available
    collected = []
    for donor in candidates:
        if needed == 0:
            break
        collected.append(apply_donation(donor, inventory, today))
        outcome['donors'].append(donor['donor_id'])
        needed -= 1
        logger.info('Notified donor %s (%s) for request %s',
                    donor['donor_id'], donor['name'], request['request_id'])

    if needed == 0:
        # the units just collected plus the own-group stock counted above
        inventory.remove_units(collected)
        inventory.consume(blood_group, available, today)
        _mark_fulfilled(request, today)
        logger.info('Request %s fulfilled via matched donors', request['request_id'])
        outcome['outcome'] = FULFILLED_BY_DONORS
    else:
        logger.warning('Partial donors found for %s (%d unit(s) still missing). Still pending.',
                       request['request_id'], needed)
        outcome['outcome'] = PARTIAL
    return outcome


def match_requests(requests, donors, inventory, today):
    """
    Run one fulfilment pass over all pending requests.

    Args:
        requests: dict of request_id -> request record (mutated in place).
        donors: dict of donor_id -> donor record (mutated in place).
        inventory: BloodInventory (mutated in place).
        today: date the pass runs on.

    Returns:
        List of outcome dicts, one per pending request visited, in the
        order they were processed.
    """
    outcomes = []
    for request in sorted(pending_requests(requests), key=request_sort_key):
        outcomes.append(match_request(request, donors, inventory, today))
    return outcomes
