import os
import sys

# Ensure imports like `from csvbal.rows import create_row` work when pytest is run from repo root
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
