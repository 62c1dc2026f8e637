"""Command entry point invoked by mdbook.

``supports <renderer>`` answers whether the preprocessor applies; without a
subcommand the ``[context, book]`` JSON pair is read from stdin and the
transformed book is written to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import List, Optional

from . import settings
from .book import transform_book
from .engine.config import config_from_context, load_config
from .engine.rules import build_rule_set
from .errors import PreprocessorError

logger = logging.getLogger('goals_preprocessor')

EXIT_OK = 0
EXIT_UNSUPPORTED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='goals-preprocessor', description=__doc__)
    parser.add_argument('--config', help='YAML file with defaults merged under book.toml settings')
    parser.add_argument('--workers', type=int, default=settings.WORKERS, help='pages processed in parallel')
    subparsers = parser.add_subparsers(dest='command')
    supports = subparsers.add_parser('supports', help='check whether a renderer is supported')
    supports.add_argument('renderer')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.config.dictConfig(settings.LOGGING)
    args = build_parser().parse_args(argv)

    if args.command == 'supports':
        if args.renderer in settings.SUPPORTED_RENDERERS:
            return EXIT_OK
        logger.info('renderer %s is not supported', args.renderer)
        return EXIT_UNSUPPORTED

    if args.config and not Path(args.config).is_file():
        logger.error('config file %s does not exist', args.config)
        return EXIT_CONFIG_ERROR

    try:
        context, book = json.load(sys.stdin)
    except (ValueError, TypeError) as exc:
        logger.error('expected a [context, book] JSON pair on stdin: %s', exc)
        return EXIT_CONFIG_ERROR

    try:
        base = load_config(args.config) if args.config else None
        config = config_from_context(context, settings.PREPROCESSOR_NAME, base)
        rules = build_rule_set(config)
        book = transform_book(book, rules, workers=args.workers)
    except PreprocessorError as exc:
        logger.error('%s', exc)
        return EXIT_CONFIG_ERROR

    json.dump(book, sys.stdout)
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
