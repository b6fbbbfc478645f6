import sys

from flow_registry.cli import main

sys.exit(main())
