"""
Donor, request and camp registries.

Each collection is a plain dict of id -> record, the same shape the stores
load and save. Functions here validate operator input and raise
ValidationError / NotFoundError before touching any collection, so a failed
command never leaves a half-applied change behind.
"""

from datetime import date

from lifelink.compatibility import normalize_blood_group
from lifelink.dates import format_date, parse_date
from lifelink.eligibility import eligibility_issues, is_eligible
from lifelink.errors import NotFoundError, ValidationError
from lifelink.logger import get_logger

logger = get_logger('registry')

DONOR_PREFIX = 'D'
REQUEST_PREFIX = 'R'
CAMP_PREFIX = 'C'

PRIORITIES = ['critical', 'urgent', 'normal']
PRIORITY_ORDER = {'critical': 0, 'urgent': 1, 'normal': 2}

STATUS_PENDING = 'pending'
STATUS_FULFILLED = 'fulfilled'


# ============== HELPER FUNCTIONS ==============

def next_id(collection, prefix):
    """
    Next identity for a collection: prefix + (largest numeric suffix + 1).
    Ids that do not follow the prefix+number pattern are ignored.
    """
    highest = 0
    for identity in collection:
        identity = str(identity)
        if identity.startswith(prefix) and identity[len(prefix):].isdigit():
            highest = max(highest, int(identity[len(prefix):]))
    return f'{prefix}{highest + 1}'


def _required_text(value, field):
    text = (value or '').strip()
    if not text:
        raise ValidationError(f'{field} is required')
    return text


def _positive_number(value, field, cast):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number') from None
    if number <= 0:
        raise ValidationError(f'{field} must be greater than 0')
    return number


def _optional_date(value, field):
    if value is None or str(value).strip() == '':
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format')
    return format_date(parsed)


def normalize_priority(value):
    priority = (value or 'normal').strip().lower()
    if priority not in PRIORITY_ORDER:
        raise ValidationError(
            f"Invalid priority '{value}'. Allowed: {', '.join(PRIORITIES)}"
        )
    return priority


# ============== DONORS ==============

def register_donor(donors, name, blood_group, age, weight, contact='', address='',
                   last_donation=None):
    """Validate and add a new donor; returns the stored record"""
    donor = {
        'name': _required_text(name, 'Name'),
        'contact': (contact or '').strip(),
        'address': (address or '').strip(),
        'blood_group': normalize_blood_group(blood_group),
        'age': _positive_number(age, 'Age', int),
        'weight': _positive_number(weight, 'Weight', float),
        'last_donation': _optional_date(last_donation, 'Last donation date'),
        'total_donations': 0,
    }
    donor_id = next_id(donors, DONOR_PREFIX)
    donors[donor_id] = {'donor_id': donor_id, **donor}
    logger.info('New donor registered: %s (%s)', donor_id, donor['blood_group'])
    return donors[donor_id]


def get_donor(donors, donor_id):
    donor = donors.get((donor_id or '').strip())
    if donor is None:
        raise NotFoundError('Donor', donor_id)
    return donor


def search_donors(donors, blood_group=None, today=None, eligible_only=False):
    """Filter donors by blood group and, with a date, by current eligibility"""
    if blood_group:
        blood_group = normalize_blood_group(blood_group)
    results = []
    for donor in donors.values():
        if blood_group and donor['blood_group'] != blood_group:
            continue
        if eligible_only and not is_eligible(donor, today or date.today()):
            continue
        results.append(donor)
    return results


def update_donor(donors, donor_id, contact=None, address=None, age=None, weight=None):
    """Update donor profile fields; only the given (non-None) fields change"""
    donor = get_donor(donors, donor_id)
    changes = {}
    if contact is not None:
        changes['contact'] = contact.strip()
    if address is not None:
        changes['address'] = address.strip()
    if age is not None:
        changes['age'] = _positive_number(age, 'Age', int)
    if weight is not None:
        changes['weight'] = _positive_number(weight, 'Weight', float)
    donor.update(changes)
    return donor


def apply_donation(donor, inventory, today):
    """Take one unit from the donor into inventory and update their history"""
    unit = inventory.add_unit(donor['blood_group'], today, donor['donor_id'])
    donor['last_donation'] = format_date(today)
    donor['total_donations'] = donor.get('total_donations', 0) + 1
    return unit


def record_donation(donors, inventory, donor_id, today):
    """Record a walk-in donation; the donor must currently be eligible"""
    donor = get_donor(donors, donor_id)
    issues = eligibility_issues(donor, today)
    if issues:
        raise ValidationError(f"Donor {donor['donor_id']} is not eligible: " + '; '.join(issues))
    unit = apply_donation(donor, inventory, today)
    logger.info('Donation recorded: %s gave 1 unit of %s', donor['donor_id'], donor['blood_group'])
    return unit


# ============== REQUESTS ==============

def create_request(requests, patient_name, blood_group, units_needed, priority='normal',
                   today=None):
    """Validate and queue a new pending blood request"""
    record = {
        'patient_name': _required_text(patient_name, 'Patient name'),
        'blood_group': normalize_blood_group(blood_group),
        'units_needed': _positive_number(units_needed, 'Units needed', int),
        'priority': normalize_priority(priority),
        'created_at': format_date(today or date.today()),
        'status': STATUS_PENDING,
        'fulfilled_date': None,
    }
    request_id = next_id(requests, REQUEST_PREFIX)
    requests[request_id] = {'request_id': request_id, **record}
    logger.info('Blood request created: %s (%s x%d, %s)', request_id,
                record['blood_group'], record['units_needed'], record['priority'])
    return requests[request_id]


def get_request(requests, request_id):
    request = requests.get((request_id or '').strip())
    if request is None:
        raise NotFoundError('Request', request_id)
    return request


def pending_requests(requests):
    return [r for r in requests.values() if r['status'] == STATUS_PENDING]


# ============== DONATION CAMPS ==============

def create_camp(camps, camp_date, location, organizer):
    held_on = _optional_date(camp_date, 'Camp date')
    if held_on is None:
        raise ValidationError('Camp date is required')
    camp_id = next_id(camps, CAMP_PREFIX)
    camps[camp_id] = {
        'camp_id': camp_id,
        'date': held_on,
        'location': _required_text(location, 'Location'),
        'organizer': _required_text(organizer, 'Organizer'),
        'registered_donors': [],
        'units_collected': 0,
    }
    logger.info('Camp created: %s at %s on %s', camp_id, camps[camp_id]['location'], held_on)
    return camps[camp_id]


def get_camp(camps, camp_id):
    camp = camps.get((camp_id or '').strip())
    if camp is None:
        raise NotFoundError('Camp', camp_id)
    return camp


def register_donor_to_camp(camps, donors, camp_id, donor_id):
    camp = get_camp(camps, camp_id)
    donor = get_donor(donors, donor_id)
    if donor['donor_id'] in camp['registered_donors']:
        raise ValidationError(f"Donor {donor['donor_id']} is already registered to camp {camp['camp_id']}")
    camp['registered_donors'].append(donor['donor_id'])
    return camp


def record_camp_donation(camps, donors, inventory, camp_id, donor_id, today):
    """Donation taken at a camp; counts towards the camp's collected units"""
    camp = get_camp(camps, camp_id)
    donor = get_donor(donors, donor_id)
    if donor['donor_id'] not in camp['registered_donors']:
        raise ValidationError(f"Donor {donor['donor_id']} is not registered to camp {camp['camp_id']}")
    unit = record_donation(donors, inventory, donor['donor_id'], today)
    camp['units_collected'] += 1
    return unit
