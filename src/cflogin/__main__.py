"""Allow ``python -m cflogin``."""

from .main import main

if __name__ == "__main__":
    main()
