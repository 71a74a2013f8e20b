"""
Integration Tests for MCP Jupiter Ultra

These tests call the MCP tool functions and the components behind them
directly, with the Jupiter Ultra API served by an httpx.MockTransport and
Solana RPC replaced by AsyncMock doubles. Real solders keypairs and
transactions are used so signing is checked byte for byte.

Test files:
- conftest.py: fixtures, the fake Ultra API and transaction builders
- test_wallet.py: key loading and transaction signing
- test_quotes.py: amount conversion and order requests
- test_executor.py: fee precondition and the execute/poll loop
- test_classifier.py: failure categories, precedence and outcomes
- test_ultra_client.py: HTTP wire format and error mapping
- test_config.py: environment configuration
- test_server.py: the four MCP tools end to end and the server lifespan

No test needs network access or a running validator.
"""

# Integration tests for mcp-jupiter-ultra
