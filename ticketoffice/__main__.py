"""CLI entry-point: python -m ticketoffice."""

from ticketoffice.cli import app

if __name__ == "__main__":
    app()
