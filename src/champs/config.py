"""
Settings for a championships data directory.
"""
import logging
import os

import yaml

from champs.models import LEVEL_DOUBLES, MIXED_DOUBLES

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
SETTINGS_FILE = 'settings.yaml'


def get_data_dir():
    """Data directory, overridable with CHAMPS_DATA_DIR."""
    return os.environ.get('CHAMPS_DATA_DIR', os.path.join(BASE_DIR, 'data'))


def get_default_settings():
    """Return default settings."""
    return {
        'pool_size': {
            LEVEL_DOUBLES: 3,
            MIXED_DOUBLES: 4,
        },
        # None means two per pool
        'advance_count': {
            LEVEL_DOUBLES: None,
            MIXED_DOUBLES: None,
        },
        'default_best_of': 1,
        'lock_timeout_seconds': 10,
    }


def load_settings(data_dir=None):
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    path = os.path.join(data_dir or get_data_dir(), SETTINGS_FILE)
    if not os.path.exists(path):
        return defaults
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return defaults
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", path)
        return defaults

    # Merge with defaults to ensure all keys exist, one level deep for per-event maps
    for key, value in defaults.items():
        if key not in data or data[key] is None:
            data[key] = value
        elif isinstance(value, dict) and isinstance(data[key], dict):
            data[key] = {**value, **data[key]}
    return data


def save_settings(settings, data_dir=None):
    """Save settings to YAML file."""
    data_dir = data_dir or get_data_dir()
    os.makedirs(data_dir, exist_ok=True)
    with open(os.path.join(data_dir, SETTINGS_FILE), 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)
