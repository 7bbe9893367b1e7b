"""Import action rows from the input directory into Halo.

Usage examples:

    python scripts/import_actions.py --only-parse
    python scripts/import_actions.py --batch-size 20
    python scripts/import_actions.py --input-dir input/part-1 --half first --reverse
"""

from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from halo_importer.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
