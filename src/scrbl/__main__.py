"""Entry point for ``python -m scrbl``."""

import sys

from scrbl.app import main

if __name__ == "__main__":
    sys.exit(main())
