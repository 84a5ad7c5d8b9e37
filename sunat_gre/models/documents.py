"""
Modelos de documentos electrónicos GRE
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable
from pydantic import BaseModel, Field


@runtime_checkable
class DocumentInterface(Protocol):
    """Documento que puede construirse, firmarse y enviarse"""

    def get_name(self) -> str:
        """Nombre lógico del documento, usado como nombre de archivo en el envío"""
        ...


class Company(BaseModel):
    """Emisor (remitente)"""
    ruc: str = Field(..., description="RUC del emisor")
    razon_social: str = Field(..., description="Razón social")
    nombre_comercial: Optional[str] = Field(None)


class Client(BaseModel):
    """Destinatario del traslado"""
    tipo_doc: str = Field(default="6", description="Catálogo 06: 6 = RUC")
    num_doc: str = Field(...)
    rzn_social: str = Field(...)


class Address(BaseModel):
    """Punto de partida o llegada"""
    ubigeo: str = Field(..., description="Código de ubigeo INEI (6 dígitos)")
    direccion: str = Field(...)


class Transportist(BaseModel):
    """Empresa de transporte (modalidad pública)"""
    tipo_doc: str = Field(default="6")
    num_doc: str = Field(...)
    rzn_social: str = Field(...)
    nro_mtc: Optional[str] = Field(None, description="Registro MTC")


class Driver(BaseModel):
    """Conductor (modalidad privada)"""
    tipo: str = Field(default="Principal")
    tipo_doc: str = Field(default="1", description="Catálogo 06: 1 = DNI")
    nro_doc: str = Field(...)
    nombres: str = Field(...)
    apellidos: str = Field(...)
    licencia: str = Field(...)


class Shipment(BaseModel):
    """Datos del envío"""
    cod_traslado: str = Field(default="01", description="Catálogo 20: motivo de traslado")
    des_traslado: Optional[str] = Field(None)
    mod_traslado: str = Field(default="01", description="Catálogo 18: 01 público, 02 privado")
    fec_traslado: date = Field(...)
    peso_total: Decimal = Field(...)
    und_peso_total: str = Field(default="KGM")
    num_bultos: Optional[int] = Field(None)
    partida: Address
    llegada: Address
    transportista: Optional[Transportist] = Field(None)
    vehiculo_placa: Optional[str] = Field(None)
    choferes: List[Driver] = Field(default_factory=list)


class DespatchDetail(BaseModel):
    """Línea de la guía"""
    cantidad: Decimal = Field(...)
    unidad: str = Field(default="NIU", description="Unidad de medida UN/ECE rec 20")
    descripcion: str = Field(...)
    codigo: Optional[str] = Field(None)


class Despatch(BaseModel):
    """Guía de Remisión Electrónica - Remitente (tipo 09)"""
    version: str = Field(default="2022")
    tipo_doc: str = Field(default="09")
    serie: str = Field(..., description="Serie, ej. T001")
    correlativo: str = Field(..., description="Número correlativo")
    fecha_emision: datetime = Field(...)
    company: Company
    destinatario: Client
    observacion: Optional[str] = Field(None)
    envio: Shipment
    details: List[DespatchDetail] = Field(default_factory=list)

    def get_name(self) -> str:
        return f"{self.company.ruc}-{self.tipo_doc}-{self.serie}-{self.correlativo}"

    @property
    def document_id(self) -> str:
        return f"{self.serie}-{self.correlativo}"
