"""bedrock_chat

Interactive Bedrock chat client that routes model tool calls to an MCP
tool server over stdio.
"""

__version__ = "0.1.0"
