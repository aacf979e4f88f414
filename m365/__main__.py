"""Entry point for ``python -m m365`` and the ``m365`` console script."""
from __future__ import annotations

import sys

from .cli.main import main

if __name__ == "__main__":
    sys.exit(main())
