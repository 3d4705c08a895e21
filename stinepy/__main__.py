"""
Package entry point.

Allows running the command line tool via:

    python -m stinepy
"""

from stinepy.cli import main

if __name__ == "__main__":
    main()
