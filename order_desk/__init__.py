"""
Order Desk.

Durable order intake with spreadsheet export for the storefront.
"""

__version__ = "0.1.0"
