"""
Lead Sync entry point.

Usage:
    python -m modules.lead_sync

Reads STRUCTURELY_API_KEY and GHL_API_KEY from the environment (or .env)
and runs the sync service until stopped.
"""

import sys

from .config import SyncConfig
from .exceptions import ConfigurationError
from .log import setup_logging
from .poller import run_poller


def main() -> int:
    try:
        config = SyncConfig.from_env()
    except ConfigurationError as e:
        print(f"[CONFIG ERROR] {e}", file=sys.stderr)
        return 1

    logger = setup_logging(config.log_level, config.log_file)

    errors = config.validate()
    if errors:
        print("[CONFIG ERRORS]", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        return 1

    logger.info("Initializing Structurely-GHL Sync Service")
    run_poller(config)
    return 0


if __name__ == '__main__':
    sys.exit(main())
