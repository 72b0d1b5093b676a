#!/usr/bin/env python3
"""
main.py: quick-start entry point.

    python main.py generate photo.jpg tiles/ -o output/mosaic.png
    python main.py suggest photo.jpg tiles/

Or use the module directly:

    python -m photo_mosaic.cli generate --help
"""

from photo_mosaic.cli import app

if __name__ == "__main__":
    app()
