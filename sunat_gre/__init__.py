"""
Cliente para la emisión de Guías de Remisión Electrónicas (GRE) ante SUNAT
"""

from .api import GreApi, create_default_api
from .models import (
    Despatch,
    DocumentInterface,
    StatusResult,
    SummaryResult,
    TicketState
)
from .utils.exceptions import (
    GreException,
    ConfigurationError,
    BuilderNotFoundError,
    BuilderError,
    SigningError,
    AuthError,
    TransportError,
    ApiError
)

__version__ = "1.0.0"

__all__ = [
    "GreApi",
    "create_default_api",
    "Despatch",
    "DocumentInterface",
    "StatusResult",
    "SummaryResult",
    "TicketState",
    "GreException",
    "ConfigurationError",
    "BuilderNotFoundError",
    "BuilderError",
    "SigningError",
    "AuthError",
    "TransportError",
    "ApiError"
]
