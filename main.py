"""
Entry point for the CSAPI MCP Server.
Run with: mcp dev main.py
"""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from csapi_mcp.server import app, run

if __name__ == "__main__":
    run()
