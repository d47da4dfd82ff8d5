"""
Command-line entry point.

Run with:
    python -m swapcheck.runner run       # one protocol invocation
    python -m swapcheck.runner status    # inspect persisted state

Invoke ``run`` three times: on the old backend, on the new one, then on
the old one again. The exit code is 0 when the invocation succeeded (or
had nothing to do) and the error's exit code otherwise.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from pymongo.errors import PyMongoError

from swapcheck import config
from swapcheck.controller import PhaseController
from swapcheck.core.logging import configure_logging
from swapcheck.database import get_db
from swapcheck.errors import SwapCheckError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORAGE_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapcheck",
        description="Verify data continuity across an old -> new -> old backend swap",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "status"],
        help="run one invocation of the protocol (default) or show its state",
    )
    parser.add_argument("--url", default=None, help=f"MongoDB URI (default: {config.MONGODB_URL})")
    parser.add_argument("--database", default=None, help=f"Database name (default: {config.DATABASE_NAME})")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def run_command(command: str, db, out=None) -> int:
    out = out or sys.stdout
    controller = PhaseController(db)
    if command == "status":
        payload = controller.status()
    else:
        outcome = controller.run()
        payload = outcome.to_dict()
        if not config.SHOW_MARKERS:
            payload.pop("markers", None)
    out.write(json.dumps(payload, sort_keys=True, default=str) + "\n")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    db = get_db(args.url, args.database)
    try:
        return run_command(args.command, db)
    except SwapCheckError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return exc.exit_code
    except PyMongoError as exc:
        logger.error("Storage error: %s", exc)
        return EXIT_STORAGE_ERROR
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
