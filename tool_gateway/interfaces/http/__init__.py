"""HTTP interface for the tool gateway."""

from .app import GatewayApp

__all__ = ["GatewayApp"]
