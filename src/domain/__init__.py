"""Domain layer - settings models and profiles."""
from domain.models import CollectorSettings, TileSourceSettings
from domain.profiles import (
    delete_profile,
    ensure_profiles_dir,
    list_profiles,
    load_profile,
    save_profile,
)

__all__ = [
    'CollectorSettings',
    'TileSourceSettings',
    'delete_profile',
    'ensure_profiles_dir',
    'list_profiles',
    'load_profile',
    'save_profile',
]
