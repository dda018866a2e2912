"""
Play Greed in the terminal.

GREEDOPTS may override the digit colors, see greed.visualization.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from greed.tui import main

if __name__ == "__main__":
    sys.exit(main())
