"""
Entry point for running the proctoring client as a module.

Usage:
    python -m proctor_client [--session ID] [--user ID] [minutes]
"""

from .cli import main

if __name__ == "__main__":
    main()
