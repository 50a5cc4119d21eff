from .errors import problem_response, register_error_handlers
from .middleware import RequestSizeLimitMiddleware
from .router import add_vault, get_owner_id, get_pipeline, router

__all__ = [
    "add_vault",
    "get_owner_id",
    "get_pipeline",
    "problem_response",
    "register_error_handlers",
    "RequestSizeLimitMiddleware",
    "router",
]
