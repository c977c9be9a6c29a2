#!/usr/bin/env python3
"""
NetSDR Client - Package Entry Point

Allows running: python -m netsdr_client
"""

import sys

from netsdr_client.cli import main

if __name__ == "__main__":
    sys.exit(main())
