"""
Package entry point.

Allows running the monitor via:

    python -m ktkbot

This simply forwards execution to ktkbot.cli.main().
"""

from ktkbot.cli import main

if __name__ == "__main__":
    main()
