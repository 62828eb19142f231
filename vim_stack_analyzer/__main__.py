#!/usr/bin/env python3
"""
Main entry point for the Vim script stack trace analyzer.
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
