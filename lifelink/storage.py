"""
Flat-file persistence: one CSV file per collection, rewritten in full on
every save (last write wins).

Loading never fails. A missing or unreadable file gives an empty collection,
and rows that cannot be parsed are skipped with a warning.
"""

import csv
from pathlib import Path

from lifelink.compatibility import BLOOD_GROUPS
from lifelink.dates import add_days, format_date
from lifelink.inventory import SHELF_LIFE_DAYS, BloodInventory
from lifelink.logger import get_logger

logger = get_logger('storage')

DONORS_FILE = 'donors.csv'
INVENTORY_FILE = 'inventory.csv'
REQUESTS_FILE = 'requests.csv'
CAMPS_FILE = 'camps.csv'

DONOR_FIELDS = ['donor_id', 'name', 'age', 'weight', 'blood_group', 'contact', 'address',
                'last_donation', 'total_donations']
UNIT_FIELDS = ['blood_group', 'collected_date', 'expiry_date', 'donor_id']
REQUEST_FIELDS = ['request_id', 'patient_name', 'blood_group', 'units_needed', 'priority',
                  'created_at', 'status', 'fulfilled_date']
CAMP_FIELDS = ['camp_id', 'date', 'location', 'organizer', 'units_collected', 'registered_donors']

# older files stored priority as 1/2/3
LEGACY_PRIORITIES = {'1': 'critical', '2': 'urgent', '3': 'normal'}


def load_csv_file(file_path):
    """Load rows from a CSV file as dicts; empty list if missing or unreadable"""
    file_path = Path(file_path)
    if not file_path.exists():
        return []
    try:
        with open(file_path, 'r', newline='', encoding='utf-8') as f:
            return list(csv.DictReader(f))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.error('Error loading %s: %s', file_path, e)
        return []


def save_csv_file(file_path, fieldnames, rows):
    """Write rows to a CSV file, replacing it; returns False on failure"""
    file_path = Path(file_path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction='ignore')
            writer.writeheader()
            for row in rows:
                writer.writerow({k: ('' if row.get(k) is None else row.get(k)) for k in fieldnames})
        return True
    except (OSError, csv.Error) as e:
        logger.error('Error saving %s: %s', file_path, e)
        return False


def _text(row, key):
    return (row.get(key) or '').strip()


def _load_records(file_path, parse_row, key):
    records = {}
    for line_no, row in enumerate(load_csv_file(file_path), start=2):
        try:
            record = parse_row(row)
        except (TypeError, ValueError) as e:
            logger.warning('Skipping bad row %d in %s: %s', line_no, file_path, e)
            continue
        if not record[key]:
            logger.warning('Skipping row %d in %s: missing %s', line_no, file_path, key)
            continue
        records[record[key]] = record
    return records


# ============== DONORS ==============

def _parse_donor(row):
    return {
        'donor_id': _text(row, 'donor_id'),
        'name': _text(row, 'name'),
        'contact': _text(row, 'contact'),
        'address': _text(row, 'address'),
        'blood_group': _text(row, 'blood_group'),
        'age': int(_text(row, 'age') or 0),
        'weight': float(_text(row, 'weight') or 0),
        'last_donation': _text(row, 'last_donation') or None,
        'total_donations': int(_text(row, 'total_donations') or 0),
    }


def load_donors(file_path):
    return _load_records(file_path, _parse_donor, 'donor_id')


def save_donors(file_path, donors):
    return save_csv_file(file_path, DONOR_FIELDS, donors.values())


# ============== INVENTORY ==============

def _parse_unit(row):
    collected = _text(row, 'collected_date')
    return {
        'blood_group': _text(row, 'blood_group'),
        'collected_date': collected,
        # expiry always follows from the collection date
        'expiry_date': format_date(add_days(collected, SHELF_LIFE_DAYS)) or _text(row, 'expiry_date'),
        'donor_id': _text(row, 'donor_id') or None,
    }


def load_inventory(file_path):
    units = []
    for row in load_csv_file(file_path):
        unit = _parse_unit(row)
        if unit['blood_group']:
            units.append(unit)
    return BloodInventory(units)


def save_inventory(file_path, inventory):
    return save_csv_file(file_path, UNIT_FIELDS, inventory.units)


# ============== REQUESTS ==============

def _parse_request(row):
    """Rows that would not pass intake validation are rejected with ValueError"""
    priority = _text(row, 'priority').lower()
    blood_group = _text(row, 'blood_group').upper()
    if blood_group not in BLOOD_GROUPS:
        raise ValueError(f'invalid blood group {blood_group!r}')
    units_needed = int(_text(row, 'units_needed') or 0)
    if units_needed < 1:
        raise ValueError(f'units needed must be at least 1, got {units_needed}')
    return {
        'request_id': _text(row, 'request_id'),
        'patient_name': _text(row, 'patient_name'),
        'blood_group': blood_group,
        'units_needed': units_needed,
        'priority': LEGACY_PRIORITIES.get(priority, priority or 'normal'),
        'created_at': _text(row, 'created_at'),
        'status': _text(row, 'status').lower() or 'pending',
        'fulfilled_date': _text(row, 'fulfilled_date') or None,
    }


def load_requests(file_path):
    return _load_records(file_path, _parse_request, 'request_id')


def save_requests(file_path, requests):
    return save_csv_file(file_path, REQUEST_FIELDS, requests.values())


# ============== CAMPS ==============

def _parse_camp(row):
    registered = _text(row, 'registered_donors')
    return {
        'camp_id': _text(row, 'camp_id'),
        'date': _text(row, 'date'),
        'location': _text(row, 'location'),
        'organizer': _text(row, 'organizer'),
        'units_collected': int(_text(row, 'units_collected') or 0),
        'registered_donors': [d for d in registered.split(';') if d],
    }


def load_camps(file_path):
    return _load_records(file_path, _parse_camp, 'camp_id')


def save_camps(file_path, camps):
    rows = [{**c, 'registered_donors': ';'.join(c['registered_donors'])} for c in camps.values()]
    return save_csv_file(file_path, CAMP_FIELDS, rows)
