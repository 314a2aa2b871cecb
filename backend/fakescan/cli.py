# fakescan/cli.py
"""
Command-line entry point.

Usage:
    fake-scanner                       # config from $FAKE_SCANNER_CONFIG or /etc/fake-scanner/config.yaml
    fake-scanner -c ./config.yaml -d   # custom config, debug logging
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from fakescan import create_app
from fakescan.config import DEFAULT_CONFIG_PATH, load_config
from fakescan.errors import ConfigError, DatabaseError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fake-scanner",
        description="Fake Harbor scanner adapter for exercising scan workflows.",
    )
    parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Path to the configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config)
        app = create_app(cfg, debug=args.debug)
    except (ConfigError, DatabaseError) as e:
        print(f"fake-scanner: {e}", file=sys.stderr)
        return 1

    host, port = cfg.server.host_port
    logger.info(f"Serving on {host}:{port}")
    app.run(host=host, port=port, threaded=True, use_reloader=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
