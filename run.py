#!/usr/bin/env python3
"""Convenience runner for the gapix GPX tool.

Usage:
    python run.py [options] [files or directories]
"""
import logging
import sys

from gapix.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
