#!/usr/bin/env python3
"""
Entry point for running sqlite_duckdb_replicator as a module.
This file enables: python -m sqlite_duckdb_replicator
"""

import sys

from .main import main

if __name__ == '__main__':
    sys.exit(main())
