"""xtlbackup: xtlbackup/__main__.py."""

import sys

from .cli import main as cli_main


def main() -> None:
    """Main function."""
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
