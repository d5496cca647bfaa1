# pyright: standard

"""snapborg: snapborg/__main__.py.

Back up point-in-time snapshots of one or more volumes with borg.
Every snapshot and mount the run creates is removed again, whether the
archive succeeded, failed or was cancelled.
"""

import sys

from .cli.dispatcher import main as dispatch


def main() -> None:
    """Main function."""
    sys.exit(dispatch(sys.argv[1:]))


if __name__ == "__main__":
    main()
