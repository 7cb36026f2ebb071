#!/usr/bin/env python3
"""
main.py - Entry point for usbtrim that works in both development and bundled modes.
"""
import sys
from pathlib import Path

# Add the project root to Python path for development mode
if __name__ == "__main__":
    script_dir = Path(__file__).resolve().parent

    if str(script_dir) not in sys.path:
        sys.path.insert(0, str(script_dir))

    try:
        from usbtrim.cli import main
        sys.exit(main())
    except ImportError as e:
        print(f"Error importing usbtrim modules: {e}")
        print("Make sure you're running from the project root directory.")
        sys.exit(1)
