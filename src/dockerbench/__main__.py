"""Allow ``python -m dockerbench``."""

from dockerbench.cli.main import main

if __name__ == "__main__":
    main()
