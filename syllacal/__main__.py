"""
Convenience entry point for running syllacal directly.

Usage: python -m syllacal [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
