"""
API routes for Reasonet.
"""

from reasonet.api.routes import analyses, webhooks

__all__ = ["analyses", "webhooks"]
