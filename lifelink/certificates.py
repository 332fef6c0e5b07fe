"""Donor appreciation certificates (plain text, one file per donor)."""

from pathlib import Path

from lifelink.dates import format_date
from lifelink.logger import get_logger

logger = get_logger('certificates')


def certificate_text(donor, today):
    return (
        '--- Donor Appreciation Certificate ---\n'
        f"Donor ID: {donor['donor_id']}\n"
        f"Name: {donor['name']}\n"
        f"Blood Group: {donor['blood_group']}\n"
        f"Total Donations: {donor.get('total_donations', 0)}\n"
        f'Date: {format_date(today)}\n'
        'Thank you for your life-saving donation!\n'
    )


def generate_certificate(donor, today, directory):
    """
    Write <donor_id>_certificate.txt into directory.

    Returns the path written, or None if the file could not be written. The
    donation itself stands either way.
    """
    path = Path(directory) / f"{donor['donor_id']}_certificate.txt"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(certificate_text(donor, today), encoding='utf-8')
    except OSError as e:
        logger.error('Could not write certificate for %s: %s', donor['donor_id'], e)
        return None
    logger.info('Certificate generated: %s', path)
    return path
