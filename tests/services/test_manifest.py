"""Tests for the CSV manifest."""

import pytest

from services.labels import SampleRecord
from services.manifest import filter_existing, read_manifest, write_manifest
from shared.exceptions import FilesystemError


class TestManifest:
    def test_write_and_read(self, tmp_path):
        records = [
            SampleRecord('1_0.png', '1_0.png', True),
            SampleRecord('2_0.png', '2_0.png', False),
            SampleRecord('3_0.png', '3_0.png', 'house'),
        ]
        path = tmp_path / 'runways.csv'
        assert write_manifest(records, path) == 3
        lines = path.read_text(encoding='utf-8').splitlines()
        assert lines == [
            'id,image,label',
            '1_0.png,1_0.png,1',
            '2_0.png,2_0.png,0',
            '3_0.png,3_0.png,house',
        ]
        assert [r.label for r in read_manifest(path)] == ['1', '0', 'house']

    def test_empty_manifest_has_header(self, tmp_path):
        path = tmp_path / 'empty.csv'
        assert write_manifest([], path) == 0
        assert path.read_text(encoding='utf-8').splitlines() == ['id,image,label']

    def test_unwritable_path(self, tmp_path):
        with pytest.raises(FilesystemError):
            write_manifest([], tmp_path / 'missing' / 'x.csv')

    def test_filter_existing(self, tmp_path):
        (tmp_path / 'b.png').write_bytes(b'x')
        records = [
            SampleRecord('a.png', 'a.png', 1),
            SampleRecord('b.png', 'b.png', 2),
        ]
        assert filter_existing(records, tmp_path) == [records[1]]
