#!/usr/bin/python3
import sys

from castlib.cli import main


if __name__ == "__main__":
    sys.exit(main())
