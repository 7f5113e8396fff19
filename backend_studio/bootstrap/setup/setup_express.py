#!/usr/bin/env python3
"""Stage-2 setup for an Express.js project.

npm runs this file from the project's ``postinstall`` hook after installing
backend-studio from ``.scripts/requirements.txt``. It asks the remaining
questions, writes the real project, runs ``npm install`` for it and deletes
the ``.scripts/`` folder it lives in.
"""

import sys
from pathlib import Path

from backend_studio.cli import stage2_main
from backend_studio.config import Framework

if __name__ == "__main__":
    sys.exit(stage2_main(Framework.EXPRESS, Path(__file__).resolve().parent.parent))
