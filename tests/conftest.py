"""Pytest configuration for the MyPL test suite."""

import sys
from pathlib import Path

# Make the mypl package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))
