"""Entry point for running Galley as a module.

Usage:
    python -m galley [command] [options]

Example:
    python -m galley render invoice.html --data invoice.yaml --format pdf -o invoice.pdf
    python -m galley validate templates/invoice.html
"""

from galley.cli import app

if __name__ == "__main__":
    app()
