"""zonesync package main entry point.

Allows running the CLI with:
    python -m zonesync
"""

from zonesync.cli import main


if __name__ == "__main__":
    main()
