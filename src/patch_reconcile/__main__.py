"""CLI entry point for the patch-reconcile server.

This module enables running the server as a Python module:
    python -m patch_reconcile

The server will start and communicate via stdio transport.
"""

import asyncio

from .server import main

if __name__ == "__main__":
    asyncio.run(main())
