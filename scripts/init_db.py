#!/usr/bin/env python3
# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Database initialization script.

Usage:
    python scripts/init_db.py [--write-config PATH]

With ``--write-config`` a config file holding the defaults is written first.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rentaly.config import Settings, configure_logging, init_settings, save_config
from rentaly.database import init_database

logger = logging.getLogger("rentaly.scripts.init_db")


def main():
    """Initialize the database."""
    parser = argparse.ArgumentParser(description="Initialize the Rentaly database")
    parser.add_argument("--write-config", metavar="PATH", help="write a default config file first")
    args = parser.parse_args()

    if args.write_config:
        if Path(args.write_config).exists():
            parser.error(f"{args.write_config} already exists")
        save_config(Settings(), args.write_config)

    settings = init_settings(args.write_config)
    configure_logging(settings)

    logger.info("Initializing Rentaly database...")
    init_database()
    logger.info("Database initialization complete")


if __name__ == "__main__":
    main()
