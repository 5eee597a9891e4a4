"""Mapping layer between flat CollectorSettings fields and sectioned TOML format.

CollectorSettings remains a flat Pydantic model. This module provides two functions:
- flat_to_sectioned(): flat dict -> sectioned dict (for TOML save)
- sectioned_to_flat(): sectioned dict -> flat dict (for TOML load)
"""

from __future__ import annotations

# {section_name: {flat_field_name: short_name_in_toml}}
SECTION_MAP: dict[str, dict[str, str]] = {
    'fetch': {
        'max_retries': 'max_retries',
        'worker_pool_size': 'workers',
        'cache_capacity': 'cache_capacity',
        'retry_delay_s': 'retry_delay_s',
        'retry_backoff': 'backoff',
        'http_timeout_s': 'timeout_s',
    },
    'http_cache': {
        'http_cache_enabled': 'enabled',
        'http_cache_dir': 'dir',
        'http_cache_expire_hours': 'expire_hours',
        'http_cache_respect_headers': 'respect_headers',
    },
}

# Written at the top level as arrays of tables
TOP_LEVEL_KEYS = frozenset({'sources'})

# Reverse index: flat_field -> (section, short_name)
_FLAT_TO_SECTION: dict[str, tuple[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    for _flat, _short in _fields.items():
        _FLAT_TO_SECTION[_flat] = (_section, _short)

# Reverse index: (section, short_name) -> flat_field
_SECTION_TO_FLAT: dict[str, dict[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    _SECTION_TO_FLAT[_section] = {v: k for k, v in _fields.items()}


def flat_to_sectioned(flat: dict) -> dict:
    """Convert flat CollectorSettings dict to sectioned dict for TOML output."""
    result: dict = {'collection': {}}
    for key, value in flat.items():
        if key in TOP_LEVEL_KEYS:
            result[key] = value
        elif key in _FLAT_TO_SECTION:
            section, short_name = _FLAT_TO_SECTION[key]
            result.setdefault(section, {})[short_name] = value
        else:
            result['collection'][key] = value
    return result


def sectioned_to_flat(data: dict) -> dict:
    """Convert sectioned TOML dict to flat dict for CollectorSettings validation."""
    flat: dict = {}
    for key, value in data.items():
        if isinstance(value, dict) and key in _SECTION_TO_FLAT:
            mapping = _SECTION_TO_FLAT[key]
            for short_name, field_value in value.items():
                flat[mapping.get(short_name, short_name)] = field_value
        elif isinstance(value, dict):
            # [collection] and unknown sections pass through as-is
            flat.update(value)
        else:
            flat[key] = value
    return flat
