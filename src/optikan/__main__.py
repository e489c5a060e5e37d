"""Entry point for optikan CLI."""

import logging
import sys

from optikan.cli import build_parser
from optikan.cli._common import error
from optikan.config import load_config
from optikan.errors import ConfigError


def setup_logging(args) -> None:
    """Log to stderr at the configured level; --verbose forces DEBUG."""
    try:
        level = load_config(args.config).level
    except ConfigError as e:
        error(str(e), args.json)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else level,
    )


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    setup_logging(args)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
