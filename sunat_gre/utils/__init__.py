"""
Inicializador de utilidades GRE
"""

from .exceptions import (
    GreException,
    ConfigurationError,
    BuilderNotFoundError,
    BuilderError,
    SigningError,
    AuthError,
    TransportError,
    ApiError
)

__all__ = [
    "GreException",
    "ConfigurationError",
    "BuilderNotFoundError",
    "BuilderError",
    "SigningError",
    "AuthError",
    "TransportError",
    "ApiError"
]
