"""Entry point for ``python -m display_captions``."""

from .cli import main

if __name__ == "__main__":
    main()
