"""
Helpers shared by the test modules.
"""

import json
from typing import Any, Dict, List
from unittest.mock import MagicMock


def sent_frames(websocket: MagicMock) -> List[Dict[str, Any]]:
    """Decode every frame written to a mock connection."""
    return [json.loads(call.args[0]) for call in websocket.send.call_args_list]


def frames_of_type(websocket: MagicMock, message_type: str) -> List[Dict[str, Any]]:
    """Decoded frames of one type written to a mock connection."""
    return [frame for frame in sent_frames(websocket) if frame["type"] == message_type]


def frame(message_type: str, **payload: Any) -> str:
    """Encode an inbound frame."""
    return json.dumps({"type": message_type, "payload": payload})
