"""Entry point for running qarun as a module.

Usage:
    python -m qarun [command] [options]

Example:
    python -m qarun analyze --project . --mode multistage
    python -m qarun check
"""

from qarun.cli import app

if __name__ == "__main__":
    app()
