"""
Application settings: built-in defaults overridden by settings.yaml in the data directory.
"""
import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = 'settings.yaml'

# Hard caps; settings.yaml cannot raise limits past these.
HARD_CAPS = {
    'max_participants_per_contest': 500,
}

COMPLETION_GATES = ('round', 'conference')


def get_default_settings():
    """Return default settings."""
    return {
        'round_weights': {
            'wildcard': 1,
            'divisional': 2,
            'conference': 3,
            'final': 5,
        },
        'matchup_bonus': {
            'correct_opponent': 1.5,
            'wrong_opponent': 0.75,
        },
        'conference_labels': {
            'A': 'AFC',
            'B': 'NFC',
        },
        'completion_gate': 'round',
        'lock_timeout_seconds': 10,
        'max_participants_per_contest': 50,
        'scoreboard_timeout_seconds': 10,
    }


def _merge(defaults, overrides):
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(data_dir):
    """Load settings.yaml from data_dir on top of the defaults.

    A missing or empty file yields the defaults. Unknown completion gates fall
    back to 'round'; participant limits are clamped to HARD_CAPS.
    """
    settings = get_default_settings()
    path = os.path.join(data_dir, SETTINGS_FILENAME)
    if os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning(f'Failed to parse {path}: {e}')
            data = None
        if isinstance(data, dict):
            settings = _merge(settings, data)

    if settings['completion_gate'] not in COMPLETION_GATES:
        logger.warning(f"Unknown completion_gate {settings['completion_gate']!r}, using 'round'")
        settings['completion_gate'] = 'round'
    settings['max_participants_per_contest'] = min(
        int(settings['max_participants_per_contest']),
        HARD_CAPS['max_participants_per_contest'],
    )
    return settings


def save_settings(data_dir, settings):
    """Save settings to settings.yaml."""
    os.makedirs(data_dir, exist_ok=True)
    with open(os.path.join(data_dir, SETTINGS_FILENAME), 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)
