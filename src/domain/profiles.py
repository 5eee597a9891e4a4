import logging
import os
from pathlib import Path

import tomlkit

from domain.models import CollectorSettings
from domain.toml_sections import flat_to_sectioned, sectioned_to_flat
from shared.constants import APP_DIR_NAME, PROFILES_DIR

logger = logging.getLogger(__name__)


def _user_profiles_dir() -> Path:
    """
    Determine profiles directory.

    1) If <project_root>/configs/profiles exists, use it (run-from-repo setups).
    2) Otherwise fall back to %APPDATA%/TileSampler/configs/profiles, or
       ~/.config/TileSampler/configs/profiles when APPDATA is not set.
    """
    project_root = Path(__file__).resolve().parent.parent.parent
    local_profiles = project_root / PROFILES_DIR
    if local_profiles.exists():
        return local_profiles

    return (
        Path(os.getenv('APPDATA') or (Path.home() / '.config'))
        / APP_DIR_NAME
        / PROFILES_DIR
    )


def ensure_profiles_dir() -> Path:
    profiles_dir = _user_profiles_dir()
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return profiles_dir


def list_profiles() -> list[str]:
    """Profile names without extension."""
    folder = ensure_profiles_dir()
    return sorted(p.stem for p in folder.glob('*.toml') if p.is_file())


def profile_path(name: str) -> Path:
    return ensure_profiles_dir() / f'{name}.toml'


def load_profile(name_or_path: str) -> CollectorSettings:
    """
    Load and validate a TOML profile.

    Accepts a profile name (without .toml) from the profiles directory or a
    path to a TOML file.
    """
    p = Path(name_or_path)
    path = (
        p if p.suffix.lower() == '.toml' and p.exists() else profile_path(name_or_path)
    )
    if not path.exists():
        msg = f'Profile not found: {path}'
        raise FileNotFoundError(msg)
    text = path.read_text(encoding='utf-8')
    data = tomlkit.parse(text).unwrap()
    settings = CollectorSettings.model_validate(sectioned_to_flat(data))
    logger.info(
        'Profile %s loaded: zoom=%d, sources=%d',
        path.name,
        settings.zoom,
        len(settings.enabled_sources),
    )
    return settings


def save_profile(name: str, settings: CollectorSettings) -> Path:
    """Write a profile as sectioned TOML."""
    path = profile_path(name)
    data = flat_to_sectioned(settings.model_dump(mode='json'))
    path.write_text(tomlkit.dumps(data), encoding='utf-8')
    return path


def delete_profile(name: str) -> None:
    path = profile_path(name)
    if path.exists():
        path.unlink()
