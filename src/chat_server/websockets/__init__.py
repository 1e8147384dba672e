"""
WebSocket layer of the chat server.

This package contains the relay server, the connection registry and the
frame processing components.
"""
