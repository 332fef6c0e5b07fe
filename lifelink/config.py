"""Environment configuration for LifeLink. Uses python-dotenv.

Values are read from the environment (optionally from a `.env` file in the
working directory) through the accessors below. The Flask app factory copies
them into `app.config`, where tests override them.
"""

import os
from pathlib import Path

from dotenv import load_dotenv


def load_config():
    """Load .env from the current directory. Existing env vars take precedence."""
    load_dotenv(Path.cwd() / '.env', override=False)


def get_optional(key, default=''):
    """Get optional env var; return default if missing or empty."""
    load_config()
    val = os.getenv(key, '').strip()
    return val if val else default


def get_optional_int(key, default):
    """Get optional env var as int; return default if missing or invalid."""
    raw = get_optional(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# --- Public config accessors ---

def data_dir():
    """Directory holding the CSV stores. Default ./data"""
    return Path(get_optional('LIFELINK_DATA_DIR', 'data'))


def certificate_dir():
    """Directory for donor certificates. Default <data dir>/certificates"""
    val = get_optional('LIFELINK_CERTIFICATE_DIR')
    return Path(val) if val else data_dir() / 'certificates'


def low_stock_threshold():
    """Groups with fewer available units than this are reported as low. Default 5"""
    return get_optional_int('LIFELINK_LOW_STOCK_THRESHOLD', 5)


def top_donors_limit():
    return get_optional_int('LIFELINK_TOP_DONORS', 5)


def log_level():
    return get_optional('LIFELINK_LOG_LEVEL', 'INFO').upper()


def log_file():
    val = get_optional('LIFELINK_LOG_FILE')
    return Path(val) if val else None


def today_override():
    """Optional ISO date used instead of the system date (demos, backfilling)."""
    return get_optional('LIFELINK_TODAY') or None


def as_mapping():
    """Flask config keys built from the environment."""
    return {
        'DATA_DIR': data_dir(),
        'CERTIFICATE_DIR': certificate_dir(),
        'LOW_STOCK_THRESHOLD': low_stock_threshold(),
        'TOP_DONORS': top_donors_limit(),
        'LOG_LEVEL': log_level(),
        'LOG_FILE': log_file(),
        'TODAY': today_override(),
    }
