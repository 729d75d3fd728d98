"""
This file configures pytest.

It puts src/ on sys.path so the tests run from a plain checkout as well as
from an editable install.

uv sync --group dev
uv run pytest -q tests

The Cassandra suite under tests/integration only runs with
RUN_INTEGRATION_TESTS=1 and the CASSANDRA_* variables pointing at a node.
"""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"

candidate_str = str(SRC_ROOT)
if candidate_str not in sys.path:
    sys.path.insert(0, candidate_str)
