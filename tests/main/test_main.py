import logging
import os

import pytest

from main import (
    build_converter,
    build_parser,
    build_settings,
    load_env_files,
    main,
    setup_logging,
)
from services.labels import RunwaySurfaceConverter, TagValueConverter


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def _args(*extra):
    return build_parser().parse_args(['collect', 'runways', 'in.geojson', 'out', *extra])


class TestMain:
    def test_setup_logging_default_location(self, tmp_path, monkeypatch, restore_root_logging):
        monkeypatch.setenv('LOCALAPPDATA', str(tmp_path))
        log_file = setup_logging()
        assert log_file == tmp_path / 'TileSampler' / 'log' / 'tile_sampler.log'
        logging.getLogger('test').info('hello')
        assert log_file.exists()

    def test_setup_logging_explicit_file(self, tmp_path, restore_root_logging):
        log_file = setup_logging('DEBUG', tmp_path / 'logs' / 'run.log')
        assert log_file.parent.is_dir()
        assert logging.getLogger().level == logging.DEBUG

    def test_parser_defaults(self):
        args = _args()
        assert args.dataset_id == 'runways'
        assert args.label == 'runway-surface'
        assert args.clear is None
        assert args.zoom is None

    def test_settings_overrides(self):
        settings = build_settings(_args('--zoom', '16', '--max-dim', '512', '--grow-factor', '0'))
        assert settings.zoom == 16
        assert settings.max_output_dimension == 512
        assert settings.grow_factor == 0.0

    def test_settings_without_overrides(self):
        settings = build_settings(_args())
        assert settings.zoom == 18

    def test_converters(self):
        assert isinstance(build_converter(_args()), RunwaySurfaceConverter)
        conv = build_converter(_args('--label', 'tag', '--tag-key', 'landuse'))
        assert isinstance(conv, TagValueConverter)
        assert conv.key == 'landuse'

    def test_missing_input_fails(self, tmp_path, restore_root_logging):
        code = main(
            [
                'collect',
                'runways',
                str(tmp_path / 'missing'),
                str(tmp_path / 'out'),
                '--log-file',
                str(tmp_path / 'run.log'),
            ]
        )
        assert code == 1
        assert 'Collection failed' in (tmp_path / 'run.log').read_text(encoding='utf-8')

    def test_invalid_override_fails(self, tmp_path, restore_root_logging):
        code = main(
            [
                'collect',
                'runways',
                str(tmp_path),
                str(tmp_path / 'out'),
                '--zoom',
                '40',
                '--log-file',
                str(tmp_path / 'run.log'),
            ]
        )
        assert code == 1


class TestLoadEnvFiles:
    def test_first_existing_file_wins(self, tmp_path, monkeypatch):
        monkeypatch.delenv('TILE_SAMPLER_TEST_KEY', raising=False)
        first = tmp_path / '.secrets.env'
        second = tmp_path / '.env'
        first.write_text('TILE_SAMPLER_TEST_KEY=from-secrets\n', encoding='utf-8')
        second.write_text('TILE_SAMPLER_TEST_KEY=from-env\n', encoding='utf-8')
        try:
            assert load_env_files([tmp_path / 'missing.env', first, second]) == first
            assert os.environ['TILE_SAMPLER_TEST_KEY'] == 'from-secrets'
        finally:
            os.environ.pop('TILE_SAMPLER_TEST_KEY', None)

    def test_nothing_found(self, tmp_path):
        assert load_env_files([tmp_path / '.env']) is None
