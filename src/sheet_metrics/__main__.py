"""Allow ``python -m sheet_metrics``."""

from sheet_metrics import cli

if __name__ == "__main__":
    cli.app()
