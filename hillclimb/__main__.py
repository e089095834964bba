"""Allow running as ``python -m hillclimb``."""

import sys

from hillclimb.cli import main

sys.exit(main())
