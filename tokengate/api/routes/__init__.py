from __future__ import annotations

from tokengate.api.routes.health import router as health_router
from tokengate.api.routes.time import router as time_router
from tokengate.api.routes.token import router as token_router

__all__ = ["health_router", "time_router", "token_router"]
