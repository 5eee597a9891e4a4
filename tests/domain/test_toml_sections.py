"""Tests for the flat <-> sectioned TOML mapping."""

from domain.models import CollectorSettings
from domain.toml_sections import SECTION_MAP, flat_to_sectioned, sectioned_to_flat


class TestFlatToSectioned:
    def test_fields_land_in_sections(self):
        data = flat_to_sectioned(
            {
                'zoom': 17,
                'worker_pool_size': 4,
                'http_cache_dir': '/tmp/c',
                'sources': [{'name': 'a'}],
            }
        )
        assert data['collection'] == {'zoom': 17}
        assert data['fetch'] == {'workers': 4}
        assert data['http_cache'] == {'dir': '/tmp/c'}
        assert data['sources'] == [{'name': 'a'}]

    def test_every_mapped_field_exists(self):
        fields = set(CollectorSettings.model_fields)
        for mapping in SECTION_MAP.values():
            assert set(mapping) <= fields


class TestSectionedToFlat:
    def test_round_trip(self):
        flat = CollectorSettings().model_dump(mode='json')
        assert sectioned_to_flat(flat_to_sectioned(flat)) == flat

    def test_unknown_short_names_pass_through(self):
        flat = sectioned_to_flat({'fetch': {'workers': 2, 'extra': 1}, 'zoom': 5})
        assert flat == {'worker_pool_size': 2, 'extra': 1, 'zoom': 5}

    def test_unknown_section_is_flattened(self):
        assert sectioned_to_flat({'misc': {'a': 1}}) == {'a': 1}
