"""
Application wiring: lifespan and middlewares.
"""

from .lifespan import lifespan
from .middlewares import register_middlewares

__all__ = ["lifespan", "register_middlewares"]
