"""
Modelos de autenticación GRE
"""

import hashlib
from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ENDPOINTS = {
    "api": "https://api-seguridad.sunat.gob.pe/v1",
    "cpe": "https://api.sunat.gob.pe/v1",
}


class GreCredentials(BaseModel):
    """Credenciales API y Clave SOL del emisor"""
    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = Field(None, description="Client ID API SUNAT")
    client_secret: Optional[str] = Field(None, description="Client Secret API SUNAT")
    username: Optional[str] = Field(None, description="RUC + usuario secundario SOL, sin separador")
    password: Optional[str] = Field(None, description="Clave SOL")

    def is_api_ready(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)

    def has_sol(self) -> bool:
        return bool(self.username) and bool(self.password)

    def cache_key(self) -> str:
        """Hash de las credenciales, usado como clave de la caché de tokens"""
        raw = "|".join(v or "" for v in (self.client_id, self.client_secret, self.username, self.password))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return f"GreCredentials(client_id={self.client_id!r}, username={self.username!r})"


class EndpointSet(BaseModel):
    """URLs base de los servicios SUNAT"""
    model_config = ConfigDict(frozen=True)

    api: str = Field(DEFAULT_ENDPOINTS["api"], description="Servicio de seguridad (tokens)")
    cpe: str = Field(DEFAULT_ENDPOINTS["cpe"], description="Servicio de envío de comprobantes")

    @field_validator("api", "cpe")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("la URL no puede estar vacía")
        return value.rstrip("/")


class GreTokenData(BaseModel):
    """Token tal como lo emite el servicio de seguridad"""
    access_token: str = Field(..., description="Token de acceso JWT")
    token_type: str = Field(default="Bearer", description="Tipo de token")
    expires_in: int = Field(..., description="Tiempo de expiración en segundos")
    scope: Optional[str] = Field(None, description="Alcance del token")


class GreToken(BaseModel):
    """Token almacenado en caché"""
    access_token: str = Field(..., description="Token de acceso")
    token_type: str = Field(default="Bearer")
    expires_at: datetime = Field(..., description="Fecha de expiración (UTC)")
    created_at: datetime = Field(..., description="Fecha de emisión (UTC)")

    @classmethod
    def from_token_data(cls, token_data: GreTokenData, now: datetime) -> "GreToken":
        return cls(
            access_token=token_data.access_token,
            token_type=token_data.token_type or "Bearer",
            expires_at=now + timedelta(seconds=token_data.expires_in),
            created_at=now,
        )

    def is_expired(self, now: datetime, buffer_seconds: int = 0) -> bool:
        return self.expires_at <= now + timedelta(seconds=buffer_seconds)

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"
