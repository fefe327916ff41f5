"""Home-chef marketplace REST backend."""

from .flask_server import create_app

__all__ = ['create_app']
