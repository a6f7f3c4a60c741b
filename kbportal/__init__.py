"""
KB Portal - multi-tenant knowledge base ingestion with delegated access
"""

__version__ = "0.1.0"
