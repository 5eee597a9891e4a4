"""CSV manifest of collected samples."""

from __future__ import annotations

import csv
import logging
import os
from typing import TYPE_CHECKING

from services.labels import SampleRecord
from shared.exceptions import FilesystemError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_HEADER = ('id', 'image', 'label')


def filter_existing(records: Iterable[SampleRecord], out_folder: Path) -> list[SampleRecord]:
    """Records whose image file is present in ``out_folder``, order kept."""
    kept = [r for r in records if (out_folder / r.image_file_name).is_file()]
    return kept


def _format_label(label: object) -> str:
    if isinstance(label, bool):
        return '1' if label else '0'
    return str(label)


def write_manifest(records: Iterable[SampleRecord], path: Path) -> int:
    """Write records as CSV and return the number of rows."""
    rows = 0
    try:
        with path.open('w', encoding='utf-8', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(MANIFEST_HEADER)
            for record in records:
                writer.writerow(
                    (record.id, record.image_file_name, _format_label(record.label))
                )
                rows += 1
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        msg = f'Failed to write manifest: {path}'
        raise FilesystemError(msg, {'error': e}) from e
    logger.info('Manifest %s: %d records', path.name, rows)
    return rows


def read_manifest(path: Path) -> list[SampleRecord]:
    """Read a manifest back; labels are returned as strings."""
    with path.open(encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        return [
            SampleRecord(id=row['id'], image_file_name=row['image'], label=row['label'])
            for row in reader
        ]
