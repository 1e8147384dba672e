#!/usr/bin/env python3
"""
Run the chat server (WebSocket relay and REST API).

This script starts both servers in one process for source checkouts.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from chat_server.main import main

if __name__ == "__main__":
    main()
