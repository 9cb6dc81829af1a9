import sys

from sctrack.main import main

sys.exit(main())
