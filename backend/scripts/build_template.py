from __future__ import annotations

import sys
from pathlib import Path

# docgen/ must be importable when run from the repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from docgen.core.config import Settings
from docgen.render.default_template import AUTHORISED_INDIVIDUAL, build_authorised_individual_workbook


def main() -> None:
    """
    Writes the built-in Authorised Individual layout as an editable template:
      python build_template.py [out_dir]

    Default out_dir is TEMPLATES_PATH.
    """
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(Settings.from_env().templates_path)
    out_dir.mkdir(parents=True, exist_ok=True)

    out_path = out_dir / f"{AUTHORISED_INDIVIDUAL}.xlsx"
    build_authorised_individual_workbook().save(out_path)
    print(f"[INFO] template saved to: {out_path}")


if __name__ == "__main__":
    main()
