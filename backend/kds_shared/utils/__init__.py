"""
Utility modules: exceptions, schemas, display lookups.
"""
