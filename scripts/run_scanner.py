#!/usr/bin/env python3
"""
Pool scanner launcher script.

Runs the scanner against configs/default.yaml. Extra arguments (e.g. --once,
--profile prod) are passed through.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from poolscan.runner.scanner import main


if __name__ == "__main__":
    sys.argv = ["poolscan", "--config", "configs/default.yaml", *sys.argv[1:]]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nPool scanner stopped by user.")
        sys.exit(0)
