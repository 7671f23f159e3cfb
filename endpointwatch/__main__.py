import sys

from endpointwatch.cli import main

sys.exit(main())
