"""Allow ``python -m gtfo_log_tracker``."""

import sys

from .cli import main

sys.exit(main())
