import pytest

from domain.models import CollectorSettings
from domain.profiles import delete_profile, list_profiles, load_profile, save_profile


@pytest.fixture
def temp_profiles_dir(tmp_path, monkeypatch):
    profiles_dir = tmp_path / 'profiles'
    profiles_dir.mkdir()
    monkeypatch.setattr('domain.profiles._user_profiles_dir', lambda: profiles_dir)
    return profiles_dir


class TestProfiles:
    def test_save_and_load_profile(self, temp_profiles_dir):
        settings = CollectorSettings(
            zoom=17,
            worker_pool_size=3,
            sources=[
                {'name': 'a', 'url': 'https://a/{z}/{x}/{y}', 'headers': {'X-Key': 'k'}},
                {'name': 'b', 'url': 'https://b/{z}/{x}/{y}', 'enabled': False},
            ],
        )
        path = save_profile('test_profile', settings)
        assert path.parent == temp_profiles_dir
        text = path.read_text(encoding='utf-8')
        assert '[collection]' in text
        assert '[fetch]' in text
        assert '[[sources]]' in text

        loaded = load_profile('test_profile')
        assert loaded == settings

    def test_load_by_path(self, temp_profiles_dir):
        path = temp_profiles_dir / 'custom.toml'
        path.write_text(
            '[collection]\nzoom = 15\n\n[fetch]\nmax_retries = 2\n', encoding='utf-8'
        )
        loaded = load_profile(str(path))
        assert loaded.zoom == 15
        assert loaded.max_retries == 2

    def test_list_and_delete(self, temp_profiles_dir):
        save_profile('b', CollectorSettings())
        save_profile('a', CollectorSettings())
        assert list_profiles() == ['a', 'b']
        delete_profile('a')
        assert list_profiles() == ['b']
        delete_profile('missing')

    def test_missing_profile(self, temp_profiles_dir):
        with pytest.raises(FileNotFoundError):
            load_profile('nope')

    def test_invalid_profile(self, temp_profiles_dir):
        (temp_profiles_dir / 'bad.toml').write_text(
            '[collection]\nzoom = 99\n', encoding='utf-8'
        )
        with pytest.raises(ValueError):
            load_profile('bad')


class TestBundledProfile:
    def test_default_profile_is_valid(self):
        loaded = load_profile('default')
        assert loaded.zoom == 18
        assert [s.name for s in loaded.enabled_sources] == ['Esri World Imagery']
        assert len(loaded.sources) == 2
