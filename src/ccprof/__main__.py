"""Allow running ccprof as ``python -m ccprof``."""

from ccprof.cli import main

if __name__ == "__main__":
    main()
