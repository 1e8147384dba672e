"""
Connection registry for the chat relay server.

This module maps a bound user id to its live WebSocket connection and the
username captured at bind time. It is the only place that knows who is
connected right now.
"""

from typing import Dict, List, Optional, Tuple

from websockets.asyncio.server import ServerConnection


class ConnectionRegistry:
    """Tracks which connection has claimed which user id."""

    def __init__(self) -> None:
        # Map user_id -> WebSocket connection
        self.connections: Dict[int, ServerConnection] = {}

        # Map user_id -> username snapshot at bind time
        self.usernames: Dict[int, str] = {}

    def bind(
        self, user_id: int, websocket: ServerConnection, username: str
    ) -> Optional[ServerConnection]:
        """
        Bind a connection to a user id.

        A user id has at most one live connection and a connection holds at
        most one identity: any other id bound to the same connection is
        released first.

        Returns:
            The connection previously bound to ``user_id`` if it was a
            different one, else None. The caller decides what to do with it.
        """
        for other_id, ws in list(self.connections.items()):
            if ws is websocket and other_id != user_id:
                self._remove(other_id)

        previous = self.connections.get(user_id)
        self.connections[user_id] = websocket
        self.usernames[user_id] = username

        if previous is not None and previous is not websocket:
            return previous
        return None

    def unbind(self, websocket: ServerConnection) -> Optional[int]:
        """
        Remove the binding held by a connection.

        Returns:
            The user id that was bound, or None if the connection was not bound
        """
        user_id = self.get_user_id(websocket)
        if user_id is not None:
            self._remove(user_id)
        return user_id

    def _remove(self, user_id: int) -> None:
        self.connections.pop(user_id, None)
        self.usernames.pop(user_id, None)

    def all(self) -> List[Tuple[int, ServerConnection]]:
        """Snapshot of (user_id, connection) pairs in bind order."""
        return list(self.connections.items())

    def get_connection(self, user_id: int) -> Optional[ServerConnection]:
        return self.connections.get(user_id)

    def get_user_id(self, websocket: ServerConnection) -> Optional[int]:
        for user_id, ws in self.connections.items():
            if ws is websocket:
                return user_id
        return None

    def get_username(self, user_id: int) -> Optional[str]:
        return self.usernames.get(user_id)

    def is_bound(self, websocket: ServerConnection) -> bool:
        return self.get_user_id(websocket) is not None

    def get_stats(self) -> Dict[str, int]:
        """Get registry statistics."""
        return {"bound_connections": len(self.connections)}
