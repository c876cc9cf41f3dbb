"""
IRP - Institution Report Platform

Accepts document-backed complaints against institutions and lets
moderators claim, work, and resolve them.
"""

__version__ = "1.0.0"
