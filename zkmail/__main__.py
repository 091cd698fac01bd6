"""
Main entry point for the zkmail CLI

    python -m zkmail <command>
"""

from .cli import main

if __name__ == "__main__":
    main()
