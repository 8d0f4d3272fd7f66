#!/usr/bin/env python3
"""main.py

Entry point for the Bedrock chat client.

Usage:
    python main.py servers/dynamo/server.py [inference-profile-id]
"""

from __future__ import annotations

# Standard Library
import sys

# Local Modules
from bedrock_chat.cli import main

if __name__ == "__main__":
    sys.exit(main())
