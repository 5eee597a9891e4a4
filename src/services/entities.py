"""Input entities and their discovery."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from shapely.errors import GEOSException, GeometryTypeError
from shapely.geometry import shape

from geo.geometry import GeoBox
from shared.constants import INPUT_SUFFIXES
from shared.exceptions import FilesystemError

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r'[^A-Za-z0-9._-]+')
_INTEGER_RE = re.compile(r'-?\d+')


@dataclass(frozen=True)
class Entity:
    """A labelled geographic object: an id, its bounding box and its tags."""

    id: str
    bounding_box: GeoBox
    tags: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)

    def tag(self, key: str) -> str | None:
        return self.tags.get(key)


def safe_name(raw: str) -> str:
    return _UNSAFE_NAME_CHARS.sub('_', raw).strip('_.')


def entity_key(entity: Entity, index: int, prefix: str = '') -> str:
    """
    File-name key of an entity.

    Positive numeric ids and other non-empty ids are used as-is (made safe
    for file names); empty, zero and negative ids fall back to the entity's
    position in its input file, written as ``<prefix>-<index>`` when a
    prefix is given so that keys from different inputs stay apart.
    """
    fallback = f'{prefix}-{index}' if prefix else str(index)
    raw = entity.id.strip()
    if _INTEGER_RE.fullmatch(raw):
        return raw if int(raw) > 0 else fallback
    return safe_name(raw) or fallback


class EntityProducer(Protocol):
    """Turns one input file into entities."""

    suffixes: tuple[str, ...]

    def parse(
        self,
        path: Path,
        accepts: Callable[[Mapping[str, str]], bool] | None = None,
    ) -> list[Entity]: ...


def _feature_id(feature: Mapping[str, Any], properties: Mapping[str, Any]) -> str:
    for candidate in (feature.get('id'), properties.get('id'), properties.get('@id')):
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return ''


def _feature_box(geometry: Any) -> GeoBox | None:
    """Bounding box of a GeoJSON geometry, None when it is missing or unusable."""
    if not isinstance(geometry, Mapping) or not geometry:
        return None
    try:
        geom = shape(geometry)
    except (GEOSException, GeometryTypeError, ValueError, TypeError, KeyError) as e:
        logger.debug('Unusable geometry %s: %s', geometry.get('type'), e)
        return None
    if geom.is_empty:
        return None
    min_lon, min_lat, max_lon, max_lat = geom.bounds
    return GeoBox(min_lat, min_lon, max_lat, max_lon)


class GeoJsonEntityProducer:
    """Reads entities from GeoJSON FeatureCollections (or single Features)."""

    suffixes: tuple[str, ...] = INPUT_SUFFIXES

    def parse(
        self,
        path: Path,
        accepts: Callable[[Mapping[str, str]], bool] | None = None,
    ) -> list[Entity]:
        try:
            doc = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            msg = f'Cannot read input file: {path}'
            raise FilesystemError(msg, {'error': e}) from e

        if isinstance(doc, Mapping) and doc.get('type') == 'Feature':
            features = [doc]
        elif isinstance(doc, Mapping):
            features = list(doc.get('features') or [])
        else:
            features = []

        entities: list[Entity] = []
        skipped = 0
        for feature in features:
            if not isinstance(feature, Mapping):
                skipped += 1
                continue
            properties = feature.get('properties') or {}
            box = _feature_box(feature.get('geometry'))
            if box is None:
                skipped += 1
                continue
            tags = {
                str(k): str(v)
                for k, v in properties.items()
                if v is not None and not isinstance(v, (dict, list))
            }
            entity = Entity(id=_feature_id(feature, properties), bounding_box=box, tags=tags)
            if accepts is None or accepts(entity.tags):
                entities.append(entity)

        if skipped:
            logger.warning('%s: skipped %d features without usable geometry', path, skipped)
        logger.info('%s: %d entities of %d features', path.name, len(entities), len(features))
        return entities


def discover_inputs(path: Path, suffixes: tuple[str, ...] = INPUT_SUFFIXES) -> list[Path]:
    """
    Input files to process.

    A file is returned as-is; a directory yields its files with one of the
    accepted suffixes, sorted by name. Anything else raises ValueError.
    """
    if path.is_file():
        return [path]
    if path.is_dir():
        wanted = {s.lower() for s in suffixes}
        return sorted(
            p for p in path.iterdir() if p.is_file() and p.suffix.lower() in wanted
        )
    msg = f'Input path is neither a file nor a directory: {path}'
    raise ValueError(msg)
