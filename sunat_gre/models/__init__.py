"""
Inicializador de modelos GRE
"""

from .auth import (
    DEFAULT_ENDPOINTS,
    GreCredentials,
    EndpointSet,
    GreTokenData,
    GreToken
)

from .documents import (
    DocumentInterface,
    Company,
    Client,
    Address,
    Transportist,
    Driver,
    Shipment,
    DespatchDetail,
    Despatch
)

from .responses import (
    TicketState,
    GreError,
    CdrResponse,
    BaseResult,
    SummaryResult,
    StatusResult
)

__all__ = [
    # Auth models
    "DEFAULT_ENDPOINTS",
    "GreCredentials",
    "EndpointSet",
    "GreTokenData",
    "GreToken",

    # Document models
    "DocumentInterface",
    "Company",
    "Client",
    "Address",
    "Transportist",
    "Driver",
    "Shipment",
    "DespatchDetail",
    "Despatch",

    # Response models
    "TicketState",
    "GreError",
    "CdrResponse",
    "BaseResult",
    "SummaryResult",
    "StatusResult"
]
