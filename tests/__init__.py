"""
Test Package for MCP Jupiter Ultra

This package contains the test suite for the MCP Jupiter Ultra server. The
tests exercise the swap pipeline (quote, sign, execute/poll, classify) and the
four MCP tools built on top of it.

Test Structure:
- integration/: tests for every component and MCP tool
- conftest.py: Pytest fixtures and configuration for testing
"""

# Test package for mcp-jupiter-ultra
