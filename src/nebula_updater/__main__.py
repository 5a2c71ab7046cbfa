"""Entry point for ``python -m nebula_updater``."""

from nebula_updater.main import main

if __name__ == "__main__":
    main()
