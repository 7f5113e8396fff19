#!/usr/bin/env python3
"""Stage-2 setup for a Flask project.

npm runs this file from the project's ``postinstall`` hook. It asks the
remaining questions, writes the Flask application, optionally creates
``venv/``, installs ``requirements.txt`` with pip and removes the npm
bootstrap leftovers together with ``.scripts/``.
"""

import sys
from pathlib import Path

from backend_studio.cli import stage2_main
from backend_studio.config import Framework

if __name__ == "__main__":
    sys.exit(stage2_main(Framework.FLASK, Path(__file__).resolve().parent.parent))
