"""Entry point for running redcoder as a module: python -m redcoder."""

from redcoder.cli import main

if __name__ == "__main__":
    main()
