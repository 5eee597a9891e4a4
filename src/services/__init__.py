"""Services package - sample collection pipeline."""

from services.entities import (
    Entity,
    EntityProducer,
    GeoJsonEntityProducer,
    discover_inputs,
    entity_key,
)
from services.labels import (
    LabelConverter,
    RunwaySurfaceConverter,
    SampleRecord,
    TagValueConverter,
)
from services.manifest import filter_existing, read_manifest, write_manifest
from services.sample_collector import (
    CollectionResult,
    EntityOutcome,
    EntityState,
    SampleCollector,
    collect_samples,
)

__all__ = [
    'CollectionResult',
    'Entity',
    'EntityOutcome',
    'EntityProducer',
    'EntityState',
    'GeoJsonEntityProducer',
    'LabelConverter',
    'RunwaySurfaceConverter',
    'SampleCollector',
    'SampleRecord',
    'TagValueConverter',
    'collect_samples',
    'discover_inputs',
    'entity_key',
    'filter_existing',
    'read_manifest',
    'write_manifest',
]
