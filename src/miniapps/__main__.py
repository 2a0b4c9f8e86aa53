#!/usr/bin/env python3
"""Mini-app registry - Module entry point."""
import sys

from miniapps.cli import main

if __name__ == "__main__":
    sys.exit(main())
