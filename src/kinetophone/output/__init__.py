"""Output modules for kinetophone."""

from .status_server import StatusServer

__all__ = ['StatusServer']
