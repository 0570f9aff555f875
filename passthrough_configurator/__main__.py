"""Allow running the configurator with `python -m passthrough_configurator`."""

import sys

from .cli import main

sys.exit(main())
