import sys

from trusted_releaser.cli import main

sys.exit(main())
