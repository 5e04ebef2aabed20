#!/usr/bin/env python3
"""
sitedetour command-line entry point
"""

from app import main

if __name__ == "__main__":
    main()
