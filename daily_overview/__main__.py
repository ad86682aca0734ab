import sys

from daily_overview.cli import main

sys.exit(main())
