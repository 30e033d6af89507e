"""Main entry point when executing throttlecli as a package.

This allows running the package using python -m throttlecli.
"""

from throttlecli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
