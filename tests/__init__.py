"""
Test suite for the chat server.

This package contains tests organized by type:
- Unit tests for individual components
- Integration tests running the real WebSocket server
"""
