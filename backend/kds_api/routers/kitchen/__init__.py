from .tickets import router

__all__ = ["router"]
