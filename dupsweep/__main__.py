import sys

from dupsweep.cli import main

sys.exit(main())
