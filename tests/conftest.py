"""Shared pytest configuration for the biller test suite.

Ensures the project root is on sys.path so test files can import
source modules (biller, store, decimals, etc.) directly.
"""

import sys
from pathlib import Path

# Add project root to sys.path so `import biller`, `from store import SpendStore`, etc. work
PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
