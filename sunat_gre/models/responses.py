"""
Modelos de respuesta GRE
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class TicketState(str, Enum):
    """Estado de resolución de un ticket"""
    PENDING = "PENDING"        # codRespuesta 98, en proceso
    ACCEPTED = "ACCEPTED"      # codRespuesta 0
    REJECTED = "REJECTED"      # codRespuesta 99


class GreError(BaseModel):
    """Error devuelto por SUNAT"""
    code: Optional[str] = Field(None, description="Código de error")
    message: Optional[str] = Field(None, description="Descripción del error")


class CdrResponse(BaseModel):
    """Constancia de recepción (ApplicationResponse)"""
    id: Optional[str] = Field(None, description="ID de la constancia")
    code: Optional[str] = Field(None, description="ResponseCode")
    description: Optional[str] = Field(None, description="Descripción de la respuesta")
    notes: List[str] = Field(default_factory=list, description="Observaciones")
    reference: Optional[str] = Field(None, description="Documento referido (serie-correlativo)")

    def is_accepted(self) -> bool:
        """Código 0 o mayor a 4000 (aceptado con observaciones)"""
        if self.code is None or not self.code.isdigit():
            return False
        code = int(self.code)
        return code == 0 or code >= 4000


class BaseResult(BaseModel):
    """Respuesta base de una operación"""
    success: bool = Field(default=False)
    error: Optional[GreError] = Field(None)


class SummaryResult(BaseResult):
    """Respuesta de envío: ticket asignado por SUNAT"""
    ticket: Optional[str] = Field(None, description="Número de ticket")
    received_at: Optional[datetime] = Field(None, description="Fecha de recepción (America/Lima)")


class StatusResult(BaseResult):
    """Respuesta de consulta de ticket"""
    code: Optional[str] = Field(None, description="codRespuesta")
    state: TicketState = Field(default=TicketState.PENDING)
    cdr_zip: Optional[bytes] = Field(None, description="CDR comprimido")
    cdr_response: Optional[CdrResponse] = Field(None)
