"""
Main entry point for the nodeport_router package.

Allows running the controller as: python -m nodeport_router
"""

from nodeport_router.cli import main

if __name__ == "__main__":
    main()
