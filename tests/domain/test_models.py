"""Tests for settings models."""

import pytest
from pydantic import ValidationError

from domain.models import CollectorSettings, TileSourceSettings
from shared.constants import DEFAULT_GROW_FACTOR, DEFAULT_MIN_BBOX_M, MAX_OUTPUT_DIMENSION
from tiles.sources import TileSource, TileSourceKind


class TestCollectorSettings:
    def test_defaults(self):
        s = CollectorSettings()
        assert s.grow_factor == DEFAULT_GROW_FACTOR
        assert s.min_bounding_box_meters == DEFAULT_MIN_BBOX_M
        assert s.max_output_dimension == MAX_OUTPUT_DIMENSION
        assert s.clear_output_before_run is False
        assert len(s.enabled_sources) == 1

    def test_string_numbers_coerced(self):
        s = CollectorSettings(grow_factor='0.5', retry_backoff='2')
        assert s.grow_factor == 0.5
        assert s.retry_backoff == 2.0

    @pytest.mark.parametrize(
        'overrides',
        [
            {'grow_factor': -0.1},
            {'min_bounding_box_meters': -1},
            {'zoom': 31},
            {'zoom': -1},
            {'max_output_dimension': 0},
            {'worker_pool_size': 0},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            CollectorSettings(**overrides)

    def test_clamped_values(self):
        s = CollectorSettings(max_retries=-3, retry_backoff=0.5)
        assert s.max_retries == 0
        assert s.retry_backoff == 1.0

    def test_unknown_keys_ignored(self):
        s = CollectorSettings(future_option=True)
        assert not hasattr(s, 'future_option')

    def test_disabled_sources_filtered(self):
        s = CollectorSettings(
            sources=[
                {'name': 'a', 'url': 'https://a/{z}/{x}/{y}'},
                {'name': 'b', 'url': 'https://b/{z}/{x}/{y}', 'enabled': False},
            ]
        )
        assert [x.name for x in s.enabled_sources] == ['a']


class TestTileSourceSettings:
    def test_blank_values_rejected(self):
        with pytest.raises(ValidationError):
            TileSourceSettings(name=' ', url='https://a/{z}/{x}/{y}')
        with pytest.raises(ValidationError):
            TileSourceSettings(name='a', url='')

    def test_zoom_range(self):
        with pytest.raises(ValidationError):
            TileSourceSettings(name='a', url='u', min_zoom=10, max_zoom=5)

    def test_to_tile_source(self):
        cfg = TileSourceSettings(
            name='wms',
            url='https://w/?bbox={bbox}',
            kind='wms',
            tile_size=512,
            headers={'Referer': 'x'},
        )
        src = TileSource.from_settings(cfg)
        assert src.kind is TileSourceKind.WMS
        assert src.tile_size == 512
        assert src.url_template == 'https://w/?bbox={bbox}'
        assert src.headers == {'Referer': 'x'}
