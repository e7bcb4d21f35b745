"""Module entrypoint for ``python -m lazylineage``."""

from .cli import main


if __name__ == "__main__":
    main()
