"""huepick CLI entry point."""

from huepick.cli import app

if __name__ == "__main__":
    app()
