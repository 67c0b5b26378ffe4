"""``python -m masterforge`` is an alias for the ``masterforge`` command."""

from masterforge.cli import main

if __name__ == "__main__":
    main()
