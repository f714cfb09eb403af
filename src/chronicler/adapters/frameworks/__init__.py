"""Framework adapters."""

from chronicler.adapters.frameworks.asgi import RequestTracerMiddleware

__all__ = ["RequestTracerMiddleware"]
