#!/usr/bin/env python
"""
Command-line interface for the OSM landscape importer

Usage:
    python cli.py import city.osm --output streetmap.json
    python cli.py landscape city.osm --radius 1000 --quad-size 1 --output ./landscape/

Installed, the same commands are available as `osm-landscape`.
"""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from osm_landscape.cli import main


if __name__ == "__main__":
    sys.exit(main())
