"""
Cliente HTTP para la API SUNAT de guías de remisión
"""

import time
from typing import Any, Dict, Optional
import logging

import httpx
from jose import jwt, JWTError

from ..models.auth import EndpointSet, GreCredentials, GreTokenData
from ..utils.exceptions import ApiError, AuthError, TransportError

logger = logging.getLogger(__name__)


class SunatApiClient:
    """Cliente HTTP para los servicios de seguridad y envío de comprobantes"""

    def __init__(
        self,
        endpoints: EndpointSet,
        timeout: float = 30,
        scope: str = "https://api-cpe.sunat.gob.pe",
        user_agent: str = "sunat-gre/1.0.0",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Inicializar cliente API

        Args:
            endpoints: URLs base ("api" para tokens, "cpe" para envíos)
            timeout: Timeout para requests en segundos
            scope: Alcance solicitado al emitir el token
            user_agent: User-Agent de las peticiones
            transport: Transporte httpx alternativo (pruebas)
        """
        self.endpoints = endpoints
        self.scope = scope

        self.paths = {
            "auth_token": "/clientessol/{client_id}/oauth2/token/",
            "enviar_comprobante": "/contribuyente/gem/comprobantes/{filename}",
            "consultar_envio": "/contribuyente/gem/comprobantes/envios/{ticket}",
        }

        self.default_headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

        self.client = httpx.Client(timeout=httpx.Timeout(timeout), transport=transport)

    def close(self):
        """Cerrar cliente HTTP"""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _build_headers(self, token: Optional[str] = None, extra_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = self.default_headers.copy()

        if token:
            headers["Authorization"] = f"Bearer {token}"

        if extra_headers:
            headers.update(extra_headers)

        return headers

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extraer el mensaje de error de una respuesta SUNAT"""
        default = f"Error HTTP {response.status_code}"
        try:
            data = response.json()
        except ValueError:
            return response.text.strip() or default

        if not isinstance(data, dict):
            return default

        for key in ("msg", "message", "error_description", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value

        errors = data.get("errors")
        if isinstance(errors, list):
            messages = [e.get("msg") for e in errors if isinstance(e, dict) and e.get("msg")]
            if messages:
                return "; ".join(messages)

        return default

    def _request(
        self,
        method: str,
        url: str,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Realizar request HTTP autenticado y retornar el JSON de respuesta

        Raises:
            AuthError: 401, token rechazado
            ApiError: Otros errores HTTP o cuerpo no JSON
            TransportError: Fallo de red
        """
        headers = self._build_headers(token, {"Content-Type": "application/json"} if json is not None else None)

        try:
            response = self.client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout en {method} {url}: {e}")
        except httpx.RequestError as e:
            raise TransportError(f"Error de conexión en {method} {url}: {e}")

        if response.status_code == 401:
            raise AuthError("Token de autenticación inválido o expirado", error_code="401")

        if response.status_code >= 400:
            message = self._error_message(response)
            try:
                response_data = response.json()
            except ValueError:
                response_data = None
            raise ApiError(
                message,
                status_code=response.status_code,
                response_data=response_data if isinstance(response_data, dict) else None,
            )

        try:
            data = response.json()
        except ValueError:
            raise ApiError("Respuesta no JSON de SUNAT", status_code=response.status_code)

        if not isinstance(data, dict):
            raise ApiError("Respuesta inesperada de SUNAT", status_code=response.status_code)

        return data

    def authenticate(self, credentials: GreCredentials) -> GreTokenData:
        """
        Intercambiar credenciales por un token de acceso

        Con Clave SOL se usa grant_type=password (usuario = RUC + usuario SOL);
        sin ella, grant_type=client_credentials.

        Raises:
            AuthError: Rechazo, error HTTP o respuesta malformada
            TransportError: Fallo de red
        """
        auth_data = {
            "scope": self.scope,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
        }
        if credentials.has_sol():
            auth_data.update({
                "grant_type": "password",
                "username": credentials.username,
                "password": credentials.password,
            })
        else:
            auth_data["grant_type"] = "client_credentials"

        url = self.endpoints.api + self.paths["auth_token"].format(client_id=credentials.client_id)
        headers = self._build_headers(extra_headers={"Content-Type": "application/x-www-form-urlencoded"})

        logger.debug(f"[AUTH] Solicitando token ({auth_data['grant_type']}) para client_id {credentials.client_id}")

        try:
            response = self.client.post(url, headers=headers, data=auth_data)
        except httpx.RequestError as e:
            raise TransportError(f"Error de conexión con servicio de seguridad: {e}")

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_code = error_data.get("error") if isinstance(error_data, dict) else None
            raise AuthError(
                f"Error en autenticación: {self._error_message(response)}",
                error_code=error_code or str(response.status_code),
                details=error_data if isinstance(error_data, dict) else None,
            )

        try:
            token_data = response.json()
        except ValueError:
            raise AuthError("Respuesta de autenticación no es JSON")

        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise AuthError("Respuesta de autenticación sin access_token")

        access_token = token_data["access_token"]
        expires_in = token_data.get("expires_in")
        if expires_in is None:
            expires_in = self._expires_in_from_jwt(access_token)

        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            raise AuthError(f"expires_in inválido: {expires_in!r}")

        if expires_in <= 0:
            raise AuthError(f"Token ya expirado (expires_in={expires_in})")

        return GreTokenData(
            access_token=access_token,
            token_type=token_data.get("token_type") or "Bearer",
            expires_in=expires_in,
            scope=token_data.get("scope"),
        )

    @staticmethod
    def _expires_in_from_jwt(access_token: str) -> int:
        """Segundos restantes según el claim exp del JWT (sin verificar firma)"""
        try:
            claims = jwt.get_unverified_claims(access_token)
        except JWTError:
            raise AuthError("Respuesta sin expires_in y token no es un JWT válido")

        exp = claims.get("exp")
        if exp is None:
            raise AuthError("Respuesta sin expires_in y token sin claim exp")

        try:
            return int(float(exp) - time.time())
        except (TypeError, ValueError):
            raise AuthError(f"Claim exp inválido: {exp!r}")

    def submit(self, filename: str, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
        """POST del comprobante comprimido; retorna el JSON con numTicket"""
        url = self.endpoints.cpe + self.paths["enviar_comprobante"].format(filename=filename)
        return self._request("POST", url, token=token, json=payload)

    def get_status(self, ticket: str, token: str) -> Dict[str, Any]:
        """GET del estado de un envío por ticket"""
        url = self.endpoints.cpe + self.paths["consultar_envio"].format(ticket=ticket)
        return self._request("GET", url, token=token)
