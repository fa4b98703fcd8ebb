"""
Tournament settings: defaults, merging and validation.
"""
import os
from datetime import date, datetime, time

from .errors import ConfigurationError

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

INTEGER_SETTINGS = ('group_size', 'advance_per_group', 'pot_count', 'swiss_rounds',
                    'playoff_teams', 'days', 'lock_timeout')
BOOLEAN_SETTINGS = ('group_stage', 'home_and_away')


def get_default_settings():
    """Return the default settings for a new tournament."""
    return {
        'group_stage': True,
        'group_size': 4,
        'advance_per_group': 2,
        'pot_count': 4,
        'home_and_away': False,
        'swiss_rounds': 5,
        'playoff_teams': 0,
        'seed': None,
        'start_date': None,
        'days': 7,
        'time_slots': ['20:00', '21:00', '22:00', '23:00'],
        'lock_timeout': 10,
    }


def merge_settings(settings=None):
    """Merge user settings over the defaults and validate the result."""
    merged = get_default_settings()
    if settings:
        for key, value in settings.items():
            if key not in merged:
                raise ConfigurationError(f"Unknown setting: {key}")
            merged[key] = value
    return validate_settings(merged)


def validate_settings(settings):
    for key in INTEGER_SETTINGS:
        value = settings.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Setting '{key}' must be an integer, got {value!r}")
    for key in BOOLEAN_SETTINGS:
        if not isinstance(settings.get(key), bool):
            raise ConfigurationError(f"Setting '{key}' must be true or false")

    if settings['group_size'] < 2:
        raise ConfigurationError("Group size must be at least 2.")
    if settings['pot_count'] < 1:
        raise ConfigurationError("Pot count must be at least 1.")
    if settings['swiss_rounds'] < 1:
        raise ConfigurationError("Swiss round count must be at least 1.")
    if settings['playoff_teams'] < 0 or settings['playoff_teams'] == 1:
        raise ConfigurationError("Playoff teams must be 0 (no playoff) or at least 2.")
    if settings['days'] < 1:
        raise ConfigurationError("Tournament must last at least one day.")

    slots = settings.get('time_slots')
    if not slots or not isinstance(slots, list):
        raise ConfigurationError("At least one time slot is required.")
    for slot in slots:
        if isinstance(slot, time):
            continue
        try:
            datetime.strptime(str(slot), '%H:%M')
        except ValueError:
            raise ConfigurationError(f"Invalid time slot: {slot!r} (expected HH:MM)")

    seed = settings.get('seed')
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, str))):
        raise ConfigurationError(f"Setting 'seed' must be a whole number or text, got {seed!r}")

    start = settings.get('start_date')
    if start is not None and not isinstance(start, date):
        try:
            date.fromisoformat(str(start))
        except ValueError:
            raise ConfigurationError(f"Invalid start date: {start!r}")
    return settings


def get_start_date(settings):
    start = settings.get('start_date')
    if start is None:
        return date.today()
    if isinstance(start, date):
        return start
    return date.fromisoformat(str(start))
