#!/usr/bin/env python3
"""
Liquibase Installer module entry point
Allows running:
    python3 -m liquibase_installer [OPTIONS] [latest|X.Y.Z] [oss|secure]
    python3 -m liquibase_installer setup_path
"""

import sys

from liquibase_installer import cli, setup_path

# Standalone helpers reachable as the first argument
ENTRY_POINTS = {
    'setup_path': setup_path.main,
}


def run():
    if len(sys.argv) > 1 and sys.argv[1] in ENTRY_POINTS:
        entry = ENTRY_POINTS[sys.argv.pop(1)]
    else:
        entry = cli.main
    entry()


if __name__ == '__main__':
    run()
