"""
Package entry point.

Allows running the application via:

    python -m duetrack

This simply forwards execution to duetrack.cli.main().
"""

from duetrack.cli import main

if __name__ == "__main__":
    main()
