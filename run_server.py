#!/usr/bin/env python3
"""Run the photo-catalog web server (http://127.0.0.1:8000) directly from source."""

import sys
from pathlib import Path

# Add src to path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

from photo_catalog.web.__main__ import main

if __name__ == "__main__":
    main()
