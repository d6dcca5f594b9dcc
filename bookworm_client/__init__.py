"""
Клиентский слой данных BookWorm: сессия, лента и публикация рекомендаций
"""

from .api_client import APIClient
from .client import BookwormClient, create_client
from .config import Settings, get_settings

__all__ = [
    "APIClient",
    "BookwormClient",
    "create_client",
    "Settings",
    "get_settings",
]

__version__ = "1.0.0"
