"""
Convenience entry point for running schedulr directly.

Usage: python -m schedulr [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
