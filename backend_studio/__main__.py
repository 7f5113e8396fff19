"""``python -m backend_studio``"""

import sys

from backend_studio.cli import main

if __name__ == "__main__":
    sys.exit(main())
