"""
Flask blueprints for the rollsmith web interface.

- api: JSON endpoints for rolls, simplification and reference data
"""

from .api import api_bp

__all__ = ['api_bp']
