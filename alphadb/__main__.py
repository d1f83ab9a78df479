#!/usr/bin/env python3
"""
AlphaDB - Entry point script

Run the REPL:
    python -m alphadb

Or use as a library:
    from alphadb import Database
    db = Database("shop")
    db.execute("SELECT * FROM users")
"""

import sys

from alphadb.core.repl import main

if __name__ == '__main__':
    sys.exit(main())
