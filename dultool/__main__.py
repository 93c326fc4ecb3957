import sys

from dultool.cli import main

sys.exit(main())
