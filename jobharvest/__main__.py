import sys

from jobharvest.cli import main

sys.exit(main())
