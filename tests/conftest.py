"""Pytest configuration for the ylang test suite."""

import sys
from pathlib import Path

# Add src directory to path so the suite runs from a plain checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

TESTS_DIR = Path(__file__).parent
