"""Allow running Fast Search with ``python -m fastsearch``."""

import sys

from .cli import main


sys.exit(main())
