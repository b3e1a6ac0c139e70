import sys

from smartmarks.client.cli import main

sys.exit(main())
