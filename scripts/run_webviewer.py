#!/usr/bin/env python3
"""CLI entry point for the Dot Machine JSON adapter.

Usage:
    python scripts/run_webviewer.py --cells 0013 --rule '{"from": [0, 2], "to": [1, 0]}' --port 5000

This starts a Flask development server exposing the machine's UI actions.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging from --verbose or DOT_MACHINE_LOG_LEVEL (default WARNING)."""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get("DOT_MACHINE_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main():
    parser = argparse.ArgumentParser(
        description="Serve a Dot Machine over HTTP"
    )
    parser.add_argument(
        "--cells",
        type=str,
        default=os.environ.get("DOT_MACHINE_CELLS", "000"),
        help="Initial digit string (default: $DOT_MACHINE_CELLS or 000)",
    )
    parser.add_argument(
        "--rule",
        type=str,
        default=os.environ.get("DOT_MACHINE_RULE"),
        help="Rule as JSON (default: binary carry)",
    )
    parser.add_argument(
        "--base",
        type=str,
        default=None,
        help="Radix for place labels",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5000,
        help="Port to run the server on (default: 5000)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for external access)",
    )
    parser.add_argument(
        "--max-firings",
        type=int,
        default=10000,
        help="Stop a cascade after this many firings (default: 10000)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable DEBUG logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable Flask debug mode with auto-reload",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    # Import and initialize the app
    from src.dotmachine.schema import parse_rule
    from src.dotmachine.types import DEFAULT_RULE, MachineConfig
    from src.dotmachine.validation import ConfigurationError
    from src.web.app import init_app

    try:
        rule = parse_rule(args.rule) if args.rule else DEFAULT_RULE
        config = MachineConfig(digits=args.cells, rule=rule, base=args.base)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    app = init_app(config, max_firings=args.max_firings)

    print(f"Serving machine {config.digits} with rule {config.rule.to_dict()}")
    print(f"Server running at http://{args.host}:{args.port}")
    print("Press Ctrl+C to stop")

    # Run the Flask development server
    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug,
    )


if __name__ == "__main__":
    main()
