"""Allow ``python -m tag_aggregation``."""

import sys

from tag_aggregation.cli import main

sys.exit(main())
