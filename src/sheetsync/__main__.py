"""Allow `python -m sheetsync`."""

from sheetsync.interface.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
