"""
HTTP surface of the filesystem service.
"""

from .api_server import APIHandler, create_app

__all__ = ['APIHandler', 'create_app']
