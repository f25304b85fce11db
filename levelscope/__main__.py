import sys

from levelscope.cli import main

sys.exit(main())
