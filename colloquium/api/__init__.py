# FilePath: "/colloquium/api/__init__.py"
# Description: Exposes the API routers.
# Author: "Colloquium Contributors"

from .bots_api import router as bots_router
from .manuscripts_api import router as manuscripts_router
from .storage_api import router as storage_router

__all__ = ["bots_router", "manuscripts_router", "storage_router"]
