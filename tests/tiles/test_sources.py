"""Tests for TileSource URL building and bounds."""

import pytest

from domain.models import TileSourceSettings
from shared.exceptions import InvalidZoomError
from tiles.cache import TileCoord
from tiles.sources import TileSource, TileSourceKind


class TestUrlFor:
    def test_xyz(self, source):
        assert source.url_for(TileCoord(3, 5, 4)) == 'https://tiles.example.com/4/3/5.png'

    def test_zoom_alias_and_flipped_row(self):
        src = TileSource('s', 'https://t/{zoom}/{x}/{-y}.jpg')
        assert src.url_for(TileCoord(1, 0, 2)) == 'https://t/2/1/3.jpg'

    def test_tms_flips_y(self):
        src = TileSource('tms', 'https://t/{z}/{x}/{y}.png', kind=TileSourceKind.TMS)
        assert src.url_for(TileCoord(0, 0, 3)) == 'https://t/3/0/7.png'

    def test_wmts(self):
        src = TileSource(
            'wmts',
            'https://t/wmts?TileMatrix={TileMatrix}&TileRow={TileRow}&TileCol={TileCol}',
            kind=TileSourceKind.WMTS,
        )
        assert src.url_for(TileCoord(7, 9, 5)) == 'https://t/wmts?TileMatrix=5&TileRow=9&TileCol=7'

    def test_wms_bbox(self):
        src = TileSource(
            'wms',
            'https://t/wms?SRS={proj}&BBOX={bbox}&WIDTH={width}&HEIGHT={height}',
            kind=TileSourceKind.WMS,
        )
        url = src.url_for(TileCoord(0, 0, 0))
        assert 'SRS=EPSG:3857' in url
        assert 'WIDTH=256&HEIGHT=256' in url
        bbox = url.split('BBOX=')[1].split('&')[0].split(',')
        assert float(bbox[0]) == pytest.approx(-20037508.342789)
        assert float(bbox[3]) == pytest.approx(20037508.342789)

    def test_switch_is_deterministic(self):
        src = TileSource('osm', 'https://{switch:a,b,c}.tile/{z}/{x}/{y}.png')
        first = src.url_for(TileCoord(1, 1, 3))
        assert first == src.url_for(TileCoord(1, 1, 3))
        assert first.startswith('https://c.tile/')


class TestBounds:
    def test_tile_bounds(self, source):
        assert source.tile_x_min(3) == 0
        assert source.tile_y_min(3) == 0
        assert source.tile_x_max(3) == 7
        assert source.tile_y_max(3) == 7

    def test_bounds_reject_invalid_zoom(self, source):
        with pytest.raises(InvalidZoomError):
            source.tile_x_max(31)

    def test_is_valid(self):
        assert TileSource('a', 'https://t/{z}/{x}/{y}').is_valid()
        assert not TileSource('a', '').is_valid()
        assert not TileSource('a', 'u', min_zoom=5, max_zoom=2).is_valid()

    def test_from_settings(self):
        settings = TileSourceSettings(
            name='sat', url='https://s/{z}/{x}/{y}', kind='tms', max_zoom=17,
            headers={'Referer': 'x'},
        )
        src = TileSource.from_settings(settings)
        assert src.kind is TileSourceKind.TMS
        assert src.max_zoom == 17
        assert src.headers == {'Referer': 'x'}

    def test_hashable_with_headers(self):
        src = TileSource('a', 'u', headers={'k': 'v'})
        assert hash(src) == hash(TileSource('a', 'u'))


class TestApiKey:
    def test_placeholder_filled(self):
        src = TileSource('k', 'https://t/{z}/{x}/{y}?access_token={api_key}', api_key='secret')
        assert src.url_for(TileCoord(1, 2, 3)) == 'https://t/3/1/2?access_token=secret'

    def test_missing_key_is_invalid(self):
        assert not TileSource('k', 'https://t/{z}/{x}/{y}?key={api_key}').is_valid()

    def test_key_read_from_environment(self, monkeypatch):
        monkeypatch.setenv('TILE_KEY', ' abc ')
        settings = TileSourceSettings(
            name='k', url='https://t/{z}/{x}/{y}?key={api_key}', api_key_env='TILE_KEY'
        )
        src = TileSource.from_settings(settings)
        assert src.api_key == 'abc'
        assert src.is_valid()
        assert 'abc' not in repr(src)
