"""Allow ``python -m memesim``."""

import sys

from .cli import main

sys.exit(main())
