"""
API routers package.
"""

from . import chat
from . import conversations
from . import health
from . import webhooks
