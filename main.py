#!/usr/bin/env python3
"""ElfCode Command Line Interface.

Run ElfCode listings without installing the package.

Usage:
    python main.py run data/input.txt
    python main.py disasm data/input.txt
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from elfcode.cli import main


if __name__ == "__main__":
    sys.exit(main())
