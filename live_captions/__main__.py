"""Entry point for ``python -m live_captions``."""

from live_captions.server.app import run_api

if __name__ == "__main__":
    run_api()
