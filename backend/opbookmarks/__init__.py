"""opbookmarks - export 1Password 8 item metadata in the 1Password 7 bookmark format"""

__version__ = "0.1.0"
