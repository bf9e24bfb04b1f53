"""
Entry point for running IgnoreTouchpad as a module.

This allows running the package with: python -m ignoretouchpad
"""

from .cli import main

if __name__ == '__main__':
    main()
