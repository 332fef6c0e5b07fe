"""
LifeLink - Blood Donation Management
Donor eligibility, blood compatibility, unit inventory and request matching
"""

__version__ = "1.0.0"
