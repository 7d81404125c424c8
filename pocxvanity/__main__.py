"""Entry point for python -m pocxvanity."""

import sys

from pocxvanity.cli import main

if __name__ == "__main__":
    sys.exit(main())
