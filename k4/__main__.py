import sys

from k4.cli import main

sys.exit(main())
