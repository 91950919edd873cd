"""turnloop CLI entry point."""

from turnloop.cli import app

if __name__ == "__main__":
    app()
