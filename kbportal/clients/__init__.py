"""
Clients for external collaborators
"""

from kbportal.clients.indexing import IndexingClient

__all__ = ["IndexingClient"]
