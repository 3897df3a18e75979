"""
Service layer: domain services and event publishing.
"""
