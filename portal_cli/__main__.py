"""Entry point for python -m portal_cli."""

from portal_cli.cli import app

if __name__ == "__main__":
    app()
