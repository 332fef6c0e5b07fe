"""Read-only reporting over donors, inventory and requests."""

from lifelink.inventory import LOW_STOCK_THRESHOLD
from lifelink.registry import STATUS_FULFILLED, pending_requests


def top_donors(donors, limit=5):
    """Most active donors first (ties broken by donor id)"""
    ranked = sorted(donors.values(), key=lambda d: (-d.get('total_donations', 0), d['donor_id']))
    return ranked[:limit]


def blood_distribution(inventory, today):
    return inventory.summary(today)


def fulfillment_ratio(requests):
    """(fulfilled, total) request counts"""
    fulfilled = sum(1 for r in requests.values() if r['status'] == STATUS_FULFILLED)
    return fulfilled, len(requests)


def get_statistics(donors, requests, inventory, camps, today,
                   low_stock_threshold=LOW_STOCK_THRESHOLD, top=5):
    """Get dashboard statistics"""
    fulfilled, total = fulfillment_ratio(requests)
    distribution = blood_distribution(inventory, today)

    return {
        'total_donors': len(donors),
        'total_requests': total,
        'active_requests': len(pending_requests(requests)),
        'fulfilled_requests': fulfilled,
        'fulfillment_rate': round(fulfilled / total, 3) if total else 0.0,
        'total_units': inventory.total_available(today),
        'inventory': distribution,
        # Critical blood groups (below the low-stock threshold)
        'critical_groups': [bg for bg, n in distribution.items() if n < low_stock_threshold],
        'top_donors': [
            {'donor_id': d['donor_id'], 'name': d['name'],
             'total_donations': d.get('total_donations', 0)}
            for d in top_donors(donors, top)
        ],
        'total_camps': len(camps),
        'camp_units_collected': sum(c.get('units_collected', 0) for c in camps.values()),
    }
