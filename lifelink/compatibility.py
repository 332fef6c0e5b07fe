"""
Blood group compatibility for red cell transfusion.

The table is read donor first: BLOOD_COMPATIBILITY[donor] lists the recipient
groups that donor may give to. It is not assumed to be symmetric.
"""

from lifelink.errors import ValidationError

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

UNIVERSAL_DONOR = 'O-'
UNIVERSAL_RECIPIENT = 'AB+'

# ============== BLOOD COMPATIBILITY MATRIX ==============
# Who can DONATE TO whom (Donor Blood Group -> Recipient Blood Groups)
BLOOD_COMPATIBILITY = {
    'O-': ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'],  # Universal donor
    'O+': ['O+', 'A+', 'B+', 'AB+'],
    'A-': ['A+', 'A-', 'AB+', 'AB-'],
    'A+': ['A+', 'AB+'],
    'B-': ['B+', 'B-', 'AB+', 'AB-'],
    'B+': ['B+', 'AB+'],
    'AB-': ['AB+', 'AB-'],
    'AB+': ['AB+'],
}


def is_valid_blood_group(blood_group):
    return blood_group in BLOOD_GROUPS


def normalize_blood_group(value):
    """Clean up operator input ('ab+ ' -> 'AB+'); raise ValidationError if unknown"""
    blood_group = (value or '').strip().upper()
    if blood_group not in BLOOD_GROUPS:
        raise ValidationError(
            f"Invalid blood group '{value}'. Allowed: {', '.join(BLOOD_GROUPS)}"
        )
    return blood_group


def is_compatible(donor_group, recipient_group):
    """Check whether blood of donor_group may be given to recipient_group"""
    if not is_valid_blood_group(donor_group) or not is_valid_blood_group(recipient_group):
        return False
    if recipient_group == UNIVERSAL_RECIPIENT:
        return True
    if donor_group == UNIVERSAL_DONOR:
        return True
    return recipient_group in BLOOD_COMPATIBILITY.get(donor_group, [])


def compatible_donor_groups(recipient_group):
    """
    Get list of donor blood groups that can donate to recipient
    Example: For A+ recipient, returns ['A+', 'A-', 'O+', 'O-']
    """
    return [bg for bg in BLOOD_GROUPS if is_compatible(bg, recipient_group)]


def compatible_recipient_groups(donor_group):
    return [bg for bg in BLOOD_GROUPS if is_compatible(donor_group, bg)]
