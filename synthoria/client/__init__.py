"""
Client side of the chat API: HTTP access, stream folding and list state.
"""

from .api import ChatApiClient, ChatApiError
from .controller import ConversationController
from .demux import FrameDecoder, StreamDemultiplexer, StreamFold, StreamOutcome, fold_frame
from .notifications import LogNotifier, Notifier

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "ConversationController",
    "FrameDecoder",
    "LogNotifier",
    "Notifier",
    "StreamDemultiplexer",
    "StreamFold",
    "StreamOutcome",
    "fold_frame",
]
