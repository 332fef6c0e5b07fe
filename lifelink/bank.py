"""
BloodBank: the four collections (donors, requests, inventory, camps) loaded
from the data directory, the operations the operator runs on them, and a save
after every change.
"""

from pathlib import Path

from lifelink import matching, registry, reports, storage
from lifelink.certificates import generate_certificate
from lifelink.compatibility import normalize_blood_group
from lifelink.dates import parse_date
from lifelink.errors import ValidationError
from lifelink.inventory import BloodInventory
from lifelink.logger import get_logger

logger = get_logger('bank')


class BloodBank:

    def __init__(self, data_dir, certificate_dir=None):
        self.data_dir = Path(data_dir)
        self.certificate_dir = Path(certificate_dir) if certificate_dir else self.data_dir / 'certificates'
        self.donors = {}
        self.requests = {}
        self.camps = {}
        self.inventory = BloodInventory()

    # ---------------- persistence ----------------

    def _path(self, name):
        return self.data_dir / name

    def load_all(self):
        self.donors = storage.load_donors(self._path(storage.DONORS_FILE))
        self.inventory = storage.load_inventory(self._path(storage.INVENTORY_FILE))
        self.requests = storage.load_requests(self._path(storage.REQUESTS_FILE))
        self.camps = storage.load_camps(self._path(storage.CAMPS_FILE))
        logger.debug('Loaded %d donor(s), %d unit(s), %d request(s), %d camp(s) from %s',
                     len(self.donors), len(self.inventory), len(self.requests),
                     len(self.camps), self.data_dir)
        return self

    def save_donors(self):
        return storage.save_donors(self._path(storage.DONORS_FILE), self.donors)

    def save_inventory(self):
        return storage.save_inventory(self._path(storage.INVENTORY_FILE), self.inventory)

    def save_requests(self):
        return storage.save_requests(self._path(storage.REQUESTS_FILE), self.requests)

    def save_camps(self):
        return storage.save_camps(self._path(storage.CAMPS_FILE), self.camps)

    def save_all(self):
        results = [self.save_donors(), self.save_inventory(), self.save_requests(), self.save_camps()]
        return all(results)

    # ---------------- donors ----------------

    def register_donor(self, **fields):
        donor = registry.register_donor(self.donors, **fields)
        self.save_donors()
        return donor

    def update_donor(self, donor_id, **changes):
        donor = registry.update_donor(self.donors, donor_id, **changes)
        self.save_donors()
        return donor

    def donate(self, donor_id, today):
        """Walk-in donation: one unit into stock, certificate for the donor"""
        unit = registry.record_donation(self.donors, self.inventory, donor_id, today)
        self.save_donors()
        self.save_inventory()
        generate_certificate(self.donors[unit['donor_id']], today, self.certificate_dir)
        return unit

    # ---------------- inventory ----------------

    def add_stock(self, blood_group, collected_date, units=1):
        """Manual stock entry (units with no donor attached)"""
        blood_group = normalize_blood_group(blood_group)
        if parse_date(collected_date) is None:
            raise ValidationError('Collection date must be a date in YYYY-MM-DD format')
        if units < 1:
            raise ValidationError('Units must be greater than 0')
        added = [self.inventory.add_unit(blood_group, collected_date) for _ in range(units)]
        self.save_inventory()
        logger.info('%d unit(s) added to inventory for %s', units, blood_group)
        return added

    def prune_expired(self, today):
        removed = self.inventory.prune_expired(today)
        if removed:
            self.save_inventory()
        return removed

    # ---------------- requests & matching ----------------

    def create_request(self, today, **fields):
        """Queue a request, then try to auto-match everything pending"""
        request = registry.create_request(self.requests, today=today, **fields)
        self.save_requests()
        outcomes = self.match(today)
        return request, outcomes

    def match(self, today):
        outcomes = matching.match_requests(self.requests, self.donors, self.inventory, today)
        for outcome in outcomes:
            for donor_id in outcome['donors']:
                generate_certificate(self.donors[donor_id], today, self.certificate_dir)
        self.save_all()
        return outcomes

    # ---------------- camps ----------------

    def create_camp(self, camp_date, location, organizer):
        camp = registry.create_camp(self.camps, camp_date, location, organizer)
        self.save_camps()
        return camp

    def register_donor_to_camp(self, camp_id, donor_id):
        camp = registry.register_donor_to_camp(self.camps, self.donors, camp_id, donor_id)
        self.save_camps()
        return camp

    def camp_donation(self, camp_id, donor_id, today):
        unit = registry.record_camp_donation(self.camps, self.donors, self.inventory,
                                             camp_id, donor_id, today)
        self.save_all()
        generate_certificate(self.donors[unit['donor_id']], today, self.certificate_dir)
        return unit

    # ---------------- reports ----------------

    def statistics(self, today, low_stock_threshold=5, top=5):
        return reports.get_statistics(self.donors, self.requests, self.inventory, self.camps,
                                      today, low_stock_threshold=low_stock_threshold, top=top)
