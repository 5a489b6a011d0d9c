import sys

from vibeguard.cli import main

sys.exit(main())
