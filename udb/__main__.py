"""Allow ``python -m udb``."""

import sys

from udb.cli import main

sys.exit(main())
