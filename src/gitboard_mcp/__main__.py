"""Entry point for running the gitboard MCP server via python -m gitboard_mcp"""

import sys

# Enforce runtime requirement early to avoid import-time errors on 3.9
if sys.version_info < (3, 10):
    print(
        f"gitboard MCP requires Python 3.10+; found {sys.version.split()[0]}",
        file=sys.stderr,
    )
    sys.exit(1)

from .server import main

if __name__ == "__main__":
    main()
