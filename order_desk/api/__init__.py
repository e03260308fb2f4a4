"""HTTP interface for the storefront."""

from .server import create_app, get_order_manager

__all__ = ['create_app', 'get_order_manager']
