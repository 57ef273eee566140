"""Allow ``python -m relational_projector``."""

from relational_projector.cli.app import app

if __name__ == "__main__":
    app()
