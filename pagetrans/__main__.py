"""
Entry point for running PageTrans as a module.

Usage:
    python -m pagetrans --help
    python -m pagetrans translate page.html --to fr --engine google
    python -m pagetrans cache stats
"""
from .cli import app


if __name__ == "__main__":
    app()
