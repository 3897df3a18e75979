"""
Shared modules for the kitchen display service and its display client.
"""
