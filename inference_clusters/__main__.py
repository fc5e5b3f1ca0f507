"""Run the CLI with ``python -m inference_clusters``."""

from __future__ import annotations

import sys

from inference_clusters.cli import main

if __name__ == "__main__":
    sys.exit(main())
