#!/usr/bin/env python3
"""
Manual runner for the Catalog Ingestion Worker

Usage:
    python run/ingestion_worker.py
    python run/ingestion_worker.py --log-level DEBUG run
    python run/ingestion_worker.py ensure-index acme
"""

import sys
import os

# Add packages directory to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, 'packages'))

from catalog_indexer.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
