#!/usr/bin/env python3
"""Acumatica Import Tool - Entry point."""
from acuimport.cli.main import cli

if __name__ == "__main__":
    cli()
