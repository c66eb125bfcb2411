"""
Module execution entry point.

Allows running with: python -m merklevault_cli
"""

import sys
from merklevault_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
