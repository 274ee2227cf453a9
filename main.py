#!/usr/bin/env python3
"""
Taccuino - A Terminal User Interface for Managing Notes

Create, view, edit, search and delete short text notes from a full-screen
terminal interface. Each note is stored as its own JSON file in the
per-user application data directory.

Requirements:
    - Python 3.8+
    - prompt_toolkit: pip install prompt_toolkit

Usage:
    python main.py [open | list | export PATH | import PATH | clear]
"""

import sys

from taccuino.cli import main

if __name__ == "__main__":
    sys.exit(main())
