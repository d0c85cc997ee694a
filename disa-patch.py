#!/usr/bin/env python3
"""
DISA Patch Entry Point

This script provides a simple entry point for the DISA Patch tool.
All application logic is contained in the disapatch.main_app module.
"""

import sys
from pathlib import Path

# Make the package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent))

# Logging will be configured by main_app.run()

if __name__ == "__main__":
    try:
        from disapatch.main_app import main
    except ImportError as e:
        print(f"Error importing main application: {e}")
        print("Please install the dependencies with: pip install -e .")
        sys.exit(1)
    main()
