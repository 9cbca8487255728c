"""Enable running cmacros as a module: python -m cmacros"""

import sys

from cmacros import (
    cli,
)

if __name__ == "__main__":
    # pylint: disable=no-value-for-parameter
    sys.exit(cli())
