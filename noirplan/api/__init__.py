"""Session factory: builds every dependency from config"""

from .session import create_session

__all__ = ["create_session"]
