#!/usr/bin/env python3
"""
Run the harvesting workflow.

Works without a Prefect server; Prefect starts a temporary local one.
Environment variables (or a .env file) provide defaults, flags override them.
"""
import argparse
import sys

from dotenv import load_dotenv
from loguru import logger as log

# Must precede package imports: constants.py reads the environment at import time
load_dotenv()

from segment_harvester.config import CATALOG_FORMATS, HarvestConfig  # noqa: E402
from segment_harvester.utils.logging import configure_logging  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download Mental Health Mondays episodes as tagged MP3s and publish a catalog"
    )
    parser.add_argument('--data-dir', help='Directory for artifacts and the catalog')
    parser.add_argument('--audio-subdir', help='Subdirectory of the data dir for MP3s ("" for none)')
    parser.add_argument('--catalog-format', choices=CATALOG_FORMATS, help='Catalog output format')
    parser.add_argument('--catalog-filename', help='YAML catalog filename')
    parser.add_argument('--feed-filename', help='RSS feed filename')
    parser.add_argument('--template', dest='template_path', help='Template used to seed a new catalog')
    parser.add_argument('--base-url', help='Prefix for feed enclosure URLs')
    parser.add_argument('--listing-url', help='Search page listing the episodes')
    parser.add_argument('--season', type=int, help='Season number for new catalog entries')
    parser.add_argument('--feed-title', help='Override feed title')
    parser.add_argument('--feed-author', help='Override feed author')
    parser.add_argument('--feed-description', help='Override feed description')
    parser.add_argument('--feed-language', help='Override feed language')
    parser.add_argument('--feed-copyright', help='Override feed copyright')
    parser.add_argument('--feed-image', help='Override feed image URL')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv: list[str] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    overrides = {k: v for k, v in vars(args).items() if k != 'verbose'}
    try:
        config = HarvestConfig.from_env(**overrides)
    except ValueError as e:
        log.error(f"Bad configuration: {e}")
        return 2

    # Imported late so --help works without Prefect's startup cost
    from segment_harvester.flows.main import harvest

    log.info("Starting harvest workflow via Prefect")
    log.info("=" * 60)
    try:
        added = harvest(config)
    except Exception as e:
        log.error(f"Fatal error: {e}")
        return 1

    log.info("=" * 60)
    log.success("Workflow complete!")
    if added:
        log.info(f"New episodes: {added}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
