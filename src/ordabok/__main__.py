import sys

from ordabok.cli import main

sys.exit(main())
