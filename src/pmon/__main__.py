import sys

from pmon.cli import main

sys.exit(main())
