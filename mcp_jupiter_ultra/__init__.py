"""
MCP Jupiter Ultra Package

This package provides an MCP (Model Context Protocol) server that lets an agent
swap tokens on Solana through the Jupiter Ultra aggregator. The server holds a
single configured wallet, signs the transactions Jupiter quotes for it, and
follows each execution until it succeeds, fails, or times out.

Main components:
- server.py: FastMCP server, lifespan context and the four MCP tools
- quotes.py: amount conversion and order requests (GET /order)
- wallet.py: wallet keypair and transaction signing
- executor.py: fee precondition and the execute/poll loop (POST /execute)
- classifier.py: outcome categories and guidance for failed or stalled swaps
- ultra_client.py: HTTP client for the Jupiter Ultra API
- config.py: environment-driven settings
"""

# MCP Jupiter Ultra
