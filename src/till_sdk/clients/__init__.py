from .base import BaseClient
from .till_client import TillClient

__all__ = ["BaseClient", "TillClient"]
