from .catalog import router

__all__ = ["router"]
