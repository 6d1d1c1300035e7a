from __future__ import annotations

from pathlib import Path
import sys


# Make the package importable from a plain checkout (without pip install -e .)
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
