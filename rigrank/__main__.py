"""Main entry point for the rigrank package.

Usage:
    python -m rigrank run --model llama3
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
