"""Allow ``python -m release_linker``."""

import sys

from release_linker.main import main

if __name__ == "__main__":
    sys.exit(main())
