"""FastAPI REST API for complaintdesk.

Run with:
    ```bash
    uvicorn complaintdesk.api:create_app --factory --reload
    ```
"""

from .app import create_app, register_exception_handlers
from .router import router

__all__ = [
    "create_app",
    "register_exception_handlers",
    "router",
]
