"""Module entry point for the pagewise CLI."""

from .main import main

main()
