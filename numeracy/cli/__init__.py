"""
Command line interface.
"""
from numeracy.cli.main import app, main

__all__ = ["app", "main"]
