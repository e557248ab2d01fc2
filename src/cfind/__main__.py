"""Entry point for ``python -m cfind``."""

from cfind.cli import app

if __name__ == "__main__":
    app()
