#!/usr/bin/env python3
"""Main entry point for autotagger package."""

import sys
from autotagger.cli import main

if __name__ == "__main__":
    sys.exit(main())
