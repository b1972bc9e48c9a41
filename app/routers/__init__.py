# app/routers/__init__.py
from . import health
from . import appointments
from . import doctors

__all__ = ["health", "appointments", "doctors"]
