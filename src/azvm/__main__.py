"""Allow running azvm as ``python -m azvm``."""

from azvm.cli import main

if __name__ == "__main__":
    main()
