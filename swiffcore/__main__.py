"""Main entry point when executing swiffcore as a package.

This allows running the package using python -m swiffcore.
"""

from swiffcore.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
