"""
elfdeps Module Entry Point
===========================

Allows running the CLI via: python -m elfdeps
"""

from elfdeps.cli import main

if __name__ == "__main__":
    main()
