"""
Application constants for LiveCount
"""

from . import agent, app, events, presence, redis
from .agent import *
from .app import *
from .events import *
from .presence import *
from .redis import *

__all__ = (
    agent.__all__ + app.__all__ + events.__all__ + presence.__all__ + redis.__all__
)
