"""Command line entry point of the tile sampler."""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from domain.models import CollectorSettings
from domain.profiles import load_profile
from services.labels import LabelConverter, RunwaySurfaceConverter, TagValueConverter
from services.sample_collector import collect_samples
from shared.constants import APP_DIR_NAME, LOG_FILE_NAME
from shared.exceptions import SampleCollectionError

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', log_file: Path | None = None) -> Path:
    """Configure application logging to stdout and a log file.

    Args:
        level: Root logger level name.
        log_file: Explicit log file; defaults to LOCALAPPDATA/TileSampler/log.

    Returns:
        Path of the log file in use.
    """
    if log_file is None:
        local_base = (
            Path(os.getenv('LOCALAPPDATA') or Path.home() / '.local' / 'state')
            / APP_DIR_NAME
        )
        log_file = local_base / 'log' / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(log_file), encoding='utf-8'),
        ],
        force=True,
    )
    return log_file


def env_file_candidates() -> list[Path]:
    """Places searched for .secrets.env / .env, most specific first."""
    cwd = Path.cwd()
    repo_root = Path(__file__).resolve().parent.parent
    candidates = [cwd / '.secrets.env', cwd / '.env']
    appdata = os.getenv('APPDATA')
    if appdata:
        candidates += [
            Path(appdata) / APP_DIR_NAME / '.secrets.env',
            Path(appdata) / APP_DIR_NAME / '.env',
        ]
    candidates += [repo_root / '.secrets.env', repo_root / '.env']
    return candidates


def load_env_files(candidates: list[Path] | None = None) -> Path | None:
    """Load the first existing env file; source API keys are read from it."""
    for path in candidates if candidates is not None else env_file_candidates():
        if path.is_file():
            load_dotenv(path)
            logger.info('Environment loaded from %s', path)
            return path
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Tile sampler - imagery training samples for map entities'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    collect = sub.add_parser('collect', help='Collect samples into an output folder')
    collect.add_argument('dataset_id', help='Manifest name (<dataset_id>.csv)')
    collect.add_argument('input', type=Path, help='Input file or folder of inputs')
    collect.add_argument('out_folder', type=Path, help='Output folder')
    collect.add_argument('--profile', help='Profile name or path to a TOML profile')
    collect.add_argument(
        '--label',
        choices=['runway-surface', 'tag'],
        default='runway-surface',
        help='Label converter',
    )
    collect.add_argument('--tag-key', default='building', help='Tag used by --label tag')
    collect.add_argument(
        '--clear',
        action='store_true',
        default=None,
        help='Delete the output folder before collecting',
    )
    collect.add_argument('--zoom', type=int)
    collect.add_argument('--grow-factor', type=float)
    collect.add_argument('--min-bbox-m', type=float)
    collect.add_argument('--max-dim', type=int)
    collect.add_argument('--log-file', type=Path)
    collect.add_argument('--log-level', default='INFO')
    return parser


def build_settings(args: argparse.Namespace) -> CollectorSettings:
    """Profile (or defaults) with command line overrides applied."""
    settings = load_profile(args.profile) if args.profile else CollectorSettings()
    overrides = {
        'zoom': args.zoom,
        'grow_factor': args.grow_factor,
        'min_bounding_box_meters': args.min_bbox_m,
        'max_output_dimension': args.max_dim,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return settings
    return CollectorSettings.model_validate({**settings.model_dump(), **overrides})


def build_converter(args: argparse.Namespace) -> LabelConverter:
    if args.label == 'tag':
        return TagValueConverter(args.tag_key)
    return RunwaySurfaceConverter()


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    log_path = setup_logging(args.log_level, args.log_file)
    logger.info('Starting tile sampler, log file %s', log_path)
    load_env_files()

    try:
        settings = build_settings(args)
        result = collect_samples(
            settings,
            build_converter(args),
            args.dataset_id,
            args.input,
            args.out_folder,
            clear_output=args.clear,
        )
    except (SampleCollectionError, ValidationError, ValueError, OSError) as e:
        logger.error('Collection failed: %s', e, exc_info=True)
        return 1

    logger.info(
        'Wrote %d records to %s (%d saved, %d skipped)',
        len(result.records),
        result.manifest_path,
        result.saved,
        result.skipped,
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
