"""
Envío de guías de remisión y consulta de tickets
"""

import base64
import binascii
import hashlib
import io
import zipfile
from datetime import datetime
from typing import Any, Dict, Optional
import logging

import pytz

from ..models.auth import GreCredentials
from ..models.responses import GreError, StatusResult, SummaryResult, TicketState
from ..utils.exceptions import ApiError, AuthError, ConfigurationError
from .api_client import SunatApiClient
from .cdr_reader import read_cdr
from .token_manager import GreTokenManager

logger = logging.getLogger(__name__)

PERU_TZ = pytz.timezone("America/Lima")

CODE_ACCEPTED = "0"
CODE_IN_PROCESS = "98"
CODE_ERROR = "99"


def compress_xml(name: str, xml: str) -> bytes:
    """Comprimir el XML como {name}.xml dentro de un zip"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"{name}.xml", xml.encode("utf-8"))
    return buffer.getvalue()


def parse_reception_date(value: Optional[str]) -> Optional[datetime]:
    """fecRecepcion viene en hora de Lima, normalmente sin zona horaria"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"[SENDER] fecRecepcion no reconocida: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = PERU_TZ.localize(parsed)
    return parsed


class GreSender:
    """Envía XML firmado y consulta el estado de tickets"""

    def __init__(self, api_client: SunatApiClient, token_manager: GreTokenManager, credentials: GreCredentials):
        self.api_client = api_client
        self.token_manager = token_manager
        self.credentials = credentials

    def _access_token(self) -> str:
        token = self.token_manager.get_or_refresh(self.credentials, self.api_client.authenticate)
        return token.access_token

    def _call(self, operation, *args) -> Dict[str, Any]:
        """Ejecuta la llamada con token; un 401 descarta el token en caché"""
        token = self._access_token()
        try:
            return operation(*args, token)
        except AuthError:
            self.token_manager.invalidate(self.credentials)
            raise

    @staticmethod
    def _rejection_error(error: Any) -> GreError:
        """error suele ser {numError, desError}; otro formato se conserva como texto"""
        if isinstance(error, dict):
            num_error = error.get("numError")
            des_error = error.get("desError")
            return GreError(
                code=str(num_error) if num_error is not None else None,
                message=str(des_error) if des_error is not None else None,
            )
        if not error:
            return GreError()
        if isinstance(error, list):
            return GreError(message="; ".join(str(e) for e in error))
        return GreError(message=str(error))

    def send(self, name: str, signed_xml: str) -> SummaryResult:
        """
        Enviar comprobante firmado

        Args:
            name: Nombre del documento (RUC-TIPO-SERIE-CORRELATIVO)
            signed_xml: XML firmado

        Returns:
            SummaryResult: Ticket asignado
        """
        zip_content = compress_xml(name, signed_xml)
        payload = {
            "archivo": {
                "nomArchivo": f"{name}.zip",
                "arcGreZip": base64.b64encode(zip_content).decode("ascii"),
                "hashZip": hashlib.sha256(zip_content).hexdigest(),
            }
        }

        logger.info(f"[SENDER] Enviando {name} ({len(zip_content)} bytes)")
        data = self._call(self.api_client.submit, name, payload)

        ticket = data.get("numTicket")
        if not ticket:
            raise ApiError("Respuesta de envío sin numTicket", status_code=200, response_data=data)

        logger.info(f"[SENDER] {name} recibido, ticket {ticket}")
        return SummaryResult(
            success=True,
            ticket=str(ticket),
            received_at=parse_reception_date(data.get("fecRecepcion")),
        )

    def status(self, ticket: Optional[str]) -> StatusResult:
        """
        Consultar el estado de un envío

        Args:
            ticket: Ticket devuelto por send()

        Returns:
            StatusResult: Estado y CDR si fue generado
        """
        if ticket is None or not str(ticket).strip():
            raise ConfigurationError("Ticket requerido para consultar estado")
        ticket = str(ticket).strip()

        data = self._call(self.api_client.get_status, ticket)

        code = data.get("codRespuesta")
        if code is None:
            raise ApiError("Respuesta de estado sin codRespuesta", status_code=200, response_data=data)
        code = str(code)

        result = StatusResult(code=code)
        if code == CODE_IN_PROCESS:
            result.success = True
            result.state = TicketState.PENDING
        elif code == CODE_ACCEPTED:
            result.success = True
            result.state = TicketState.ACCEPTED
        elif code == CODE_ERROR:
            result.success = False
            result.state = TicketState.REJECTED
            result.error = self._rejection_error(data.get("error"))
        else:
            raise ApiError(f"codRespuesta desconocido: {code}", status_code=200, response_data=data)

        if data.get("arcCdr") and str(data.get("indCdrGenerado", "1")) == "1":
            try:
                result.cdr_zip = base64.b64decode(data["arcCdr"], validate=True)
            except (binascii.Error, ValueError, TypeError) as e:
                raise ApiError(f"arcCdr no es base64 válido: {e}", status_code=200)
            result.cdr_response = read_cdr(result.cdr_zip)

        logger.info(f"[SENDER] Ticket {ticket}: {result.state.value} (codRespuesta {code})")
        return result
