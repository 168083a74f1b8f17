from storage.api.controller import controller_router
from storage.api.errors import register_exception_handlers
from storage.api.routes import systems_router

__all__ = ["systems_router", "controller_router", "register_exception_handlers"]
