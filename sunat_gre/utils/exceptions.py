"""
Excepciones personalizadas para el cliente GRE
"""

from typing import Optional, Dict, Any


class GreException(Exception):
    """Excepción base para el cliente GRE"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(GreException):
    """Falta configuración requerida antes de una operación"""
    pass


class BuilderNotFoundError(GreException):
    """No existe generador XML registrado para el tipo de documento"""

    def __init__(self, document_type: type, details: Optional[Dict[str, Any]] = None):
        self.document_type = document_type
        super().__init__(
            f"No se encontró generador XML para {document_type.__module__}.{document_type.__qualname__}",
            details,
        )


class BuilderError(GreException):
    """Error al renderizar el XML de un documento"""
    pass


class SigningError(GreException):
    """Certificado inválido o fallo en la firma XML"""
    pass


class AuthError(GreException):
    """Intercambio de credenciales rechazado o respuesta de token inválida"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        super().__init__(message, details)


class TransportError(GreException):
    """Fallo de red o timeout"""
    pass


class ApiError(GreException):
    """Respuesta bien formada pero no exitosa de la API SUNAT"""

    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message, response_data)

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"
