"""FastMCP server exposing DynamoDB table operations as tools."""
