#!/usr/bin/env python3
"""Run the Cart MCP Server over stdio"""

import sys
from cart_mcp.mcp_server import main

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)
