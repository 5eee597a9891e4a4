"""Sample collector - orchestrates the imagery sample pipeline."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from geo.geometry import check_min_size_and_grow
from imaging.composer import assemble_region_image
from imaging.io import save_png
from imaging.transforms import downscale_to_max
from infrastructure.http.client import (
    HttpTileLoader,
    cleanup_sqlite_cache,
    resolve_cache_dir,
    session_for_settings,
)
from services.entities import GeoJsonEntityProducer, discover_inputs, entity_key, safe_name
from services.manifest import filter_existing, write_manifest
from shared.constants import (
    LOG_MEMORY_EVERY_ENTITIES,
    MANIFEST_SUFFIX,
    SAMPLE_IMAGE_SUFFIX,
)
from shared.diagnostics import ensure_writable_dir, log_memory_usage, log_thread_status
from shared.exceptions import (
    AssemblyIncompleteError,
    FilesystemError,
    InvalidRangeError,
    InvalidZoomError,
    OutputRootError,
)
from shared.progress import ConsoleProgress
from tiles.cache import TileCache
from tiles.coverage import TileSet
from tiles.fetcher import TileFetcher
from tiles.sources import TileSource

if TYPE_CHECKING:
    from domain.models import CollectorSettings
    from geo.geometry import GeoBox
    from services.entities import Entity, EntityProducer
    from services.labels import LabelConverter, SampleRecord
    from tiles.fetcher import FetchBytes

logger = logging.getLogger(__name__)

# Per-entity failures that skip the entity but let the run continue
_ENTITY_ERRORS = (
    AssemblyIncompleteError,
    FilesystemError,
    InvalidRangeError,
    InvalidZoomError,
)


class EntityState(str, Enum):
    PENDING = 'pending'
    TILES_REQUESTED = 'tiles_requested'
    ASSEMBLING = 'assembling'
    SAVED = 'saved'
    SKIPPED = 'skipped'


@dataclass
class EntityOutcome:
    """What happened to one entity for one source."""

    entity_id: str
    source_name: str
    file_name: str
    state: EntityState = EntityState.PENDING
    reason: str | None = None
    reused: bool = False


@dataclass
class CollectionResult:
    dataset_id: str
    records: list[SampleRecord] = field(default_factory=list)
    outcomes: list[EntityOutcome] = field(default_factory=list)
    manifest_path: Path | None = None

    @property
    def saved(self) -> int:
        return sum(1 for o in self.outcomes if o.state is EntityState.SAVED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.state is EntityState.SKIPPED)


def sample_file_name(
    entity: Entity, index: int, source_index: int, prefix: str = ''
) -> str:
    return f'{entity_key(entity, index, prefix)}_{source_index}{SAMPLE_IMAGE_SUFFIX}'


class SampleCollector:
    """
    Collects one imagery sample per entity and source into an output folder.

    The tile cache may be shared between collectors; the fetcher and the HTTP
    session live for one ``collect`` call.
    """

    def __init__(
        self,
        settings: CollectorSettings,
        converter: LabelConverter,
        *,
        sources: list[TileSource] | None = None,
        producer: EntityProducer | None = None,
        fetch_bytes: FetchBytes | None = None,
        cache: TileCache | None = None,
    ) -> None:
        self.settings = settings
        self.converter = converter
        self.producer = producer or GeoJsonEntityProducer()
        if sources is None:
            sources = [TileSource.from_settings(s) for s in settings.enabled_sources]
        invalid = [s.name for s in sources if not s.is_valid()]
        if invalid:
            msg = f'Invalid tile sources: {", ".join(invalid)}'
            raise ValueError(msg)
        if not sources:
            msg = 'No enabled tile sources configured'
            raise ValueError(msg)
        self.sources = sources
        self.cache = cache if cache is not None else TileCache(settings.cache_capacity)
        self._fetch_bytes = fetch_bytes
        self._processed = 0

    async def collect(
        self,
        dataset_id: str,
        input_path: str | Path,
        out_folder: str | Path,
        clear_output: bool | None = None,
    ) -> CollectionResult:
        """
        Run a full collection.

        Args:
            dataset_id: Name of the manifest (``<dataset_id>.csv``).
            input_path: An input file or a folder of input files.
            out_folder: Folder receiving sample images and the manifest.
            clear_output: Delete the output folder first; defaults to the
                ``clear_output_before_run`` setting.

        Returns:
            CollectionResult with the manifest records and per-entity outcomes.

        Raises:
            OutputRootError: The output folder cannot be cleared or written.
            ValueError: The input path is neither a file nor a directory.
        """
        start = time.monotonic()
        clear = self.settings.clear_output_before_run if clear_output is None else clear_output
        out = Path(out_folder)
        inputs = discover_inputs(Path(input_path), self.producer.suffixes)
        logger.info(
            'Collecting %s: %d input files, %d sources, zoom %d',
            dataset_id,
            len(inputs),
            len(self.sources),
            self.settings.zoom,
        )
        if clear:
            self._clear_output(out)
        ensure_writable_dir(out)

        log_memory_usage('before collection')
        log_thread_status('before collection')

        async with contextlib.AsyncExitStack() as stack:
            fetch_bytes = self._fetch_bytes
            cache_dir = None
            if fetch_bytes is None:
                session = await stack.enter_async_context(session_for_settings(self.settings))
                if self.settings.http_cache_enabled:
                    cache_dir = resolve_cache_dir(self.settings.http_cache_dir)
                fetch_bytes = HttpTileLoader(
                    session, timeout=self.settings.http_timeout_s
                ).fetch_tile_bytes
            fetcher = TileFetcher(
                fetch_bytes,
                concurrency=self.settings.worker_pool_size,
                max_retries=self.settings.max_retries,
                retry_delay=self.settings.retry_delay_s,
                backoff=self.settings.retry_backoff,
            )
            results = await asyncio.gather(
                *(self._collect_file(f, out, fetcher, clear) for f in inputs),
                return_exceptions=True,
            )
            # First failure is raised once every file task is done with the session
            errors = [r for r in results if isinstance(r, BaseException)]
            if errors:
                raise errors[0]
        if cache_dir is not None:
            cleanup_sqlite_cache(cache_dir)

        result = CollectionResult(dataset_id=dataset_id)
        for records, outcomes in results:  # type: ignore[misc]
            result.records.extend(records)
            result.outcomes.extend(outcomes)

        result.records = filter_existing(result.records, out)
        result.manifest_path = out / f'{dataset_id}{MANIFEST_SUFFIX}'
        write_manifest(result.records, result.manifest_path)

        stats = self.cache.stats()
        logger.info(
            'Collection %s done in %.1fs: saved=%d skipped=%d records=%d '
            '(tiles loaded=%d, retries=%d, given up=%d, cache entries=%d)',
            dataset_id,
            time.monotonic() - start,
            result.saved,
            result.skipped,
            len(result.records),
            fetcher.stats.loaded,
            fetcher.stats.retries,
            fetcher.stats.given_up,
            stats.entries,
        )
        log_memory_usage('after collection')
        return result

    def _clear_output(self, out: Path) -> None:
        if not out.exists():
            return
        logger.info('Clearing output folder %s', out)
        try:
            shutil.rmtree(out)
        except OSError as e:
            msg = f'Cannot clear output folder: {out}'
            raise OutputRootError(msg, {'error': e}) from e

    async def _collect_file(
        self,
        input_file: Path,
        out: Path,
        fetcher: TileFetcher,
        clear: bool,
    ) -> tuple[list[SampleRecord], list[EntityOutcome]]:
        records: list[SampleRecord] = []
        outcomes: list[EntityOutcome] = []
        try:
            entities = self.producer.parse(input_file, self.converter.accepts)
        except FilesystemError:
            logger.exception('Skipping unreadable input %s', input_file)
            return records, outcomes

        prefix = safe_name(input_file.stem)
        boxes: list[GeoBox | None] = []
        for entity in entities:
            try:
                boxes.append(
                    check_min_size_and_grow(
                        entity.bounding_box,
                        self.settings.min_bounding_box_meters,
                        self.settings.grow_factor,
                    )
                )
            except InvalidRangeError as e:
                logger.warning('Entity %s has an unusable box: %s', entity.id, e)
                boxes.append(None)

        progress = ConsoleProgress(
            total=len(entities) * len(self.sources), label=f'Samples {input_file.name}'
        )
        for source_index, source in enumerate(self.sources):
            for index, (entity, box) in enumerate(zip(entities, boxes)):
                outcome, record = await self._process_entity(
                    entity, index, prefix, box, source, source_index, out, fetcher, clear
                )
                outcomes.append(outcome)
                if record is not None:
                    records.append(record)
                await progress.step(1)
                self._processed += 1
                if self._processed % LOG_MEMORY_EVERY_ENTITIES == 0:
                    log_memory_usage(f'{self._processed} entities')
        progress.close()
        return records, outcomes

    async def _process_entity(
        self,
        entity: Entity,
        index: int,
        prefix: str,
        box: GeoBox | None,
        source: TileSource,
        source_index: int,
        out: Path,
        fetcher: TileFetcher,
        clear: bool,
    ) -> tuple[EntityOutcome, SampleRecord | None]:
        file_name = sample_file_name(entity, index, source_index, prefix)
        out_file = out / file_name
        outcome = EntityOutcome(
            entity_id=entity.id, source_name=source.name, file_name=file_name
        )

        if out_file.exists() and not clear:
            logger.debug('Already downloaded: %s', out_file)
            outcome.state = EntityState.SAVED
            outcome.reused = True
        elif box is None:
            outcome.state = EntityState.SKIPPED
            outcome.reason = 'unusable bounding box'
            return outcome, None
        else:
            try:
                outcome.state = EntityState.TILES_REQUESTED
                tile_set = TileSet(source, self.cache, fetcher, box, self.settings.zoom)
                await tile_set.load_all()
                outcome.state = EntityState.ASSEMBLING
                image = assemble_region_image(tile_set, clip_and_center=True)
                image = downscale_to_max(image, self.settings.max_output_dimension)
                save_png(image, out_file)
            except _ENTITY_ERRORS as e:
                outcome.state = EntityState.SKIPPED
                outcome.reason = str(e)
                logger.warning(
                    'Skipping entity %s for %s: %s', entity.id or index, source.name, e
                )
                return outcome, None
            outcome.state = EntityState.SAVED
            logger.debug('Saved %s', out_file)

        return outcome, self.converter.convert(file_name, entity)


def collect_samples(
    settings: CollectorSettings,
    converter: LabelConverter,
    dataset_id: str,
    input_path: str | Path,
    out_folder: str | Path,
    *,
    clear_output: bool | None = None,
    **kwargs: object,
) -> CollectionResult:
    """Blocking wrapper around SampleCollector.collect."""
    collector = SampleCollector(settings, converter, **kwargs)  # type: ignore[arg-type]
    return asyncio.run(
        collector.collect(dataset_id, input_path, out_folder, clear_output=clear_output)
    )
