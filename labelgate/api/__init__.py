"""labelgate API package.

This module provides the FastAPI service layer that exposes the admission
decision engine to the cluster control plane.
"""

from .server import ServerConfig, app_from_env, create_app  # noqa: F401
