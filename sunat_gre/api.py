"""
Fachada GRE: genera, firma y envía guías de remisión electrónicas a SUNAT
"""

from typing import Any, Callable, Dict, Mapping, Optional
import logging

from pydantic import ValidationError

from .config import Settings, settings as default_settings
from .models.auth import EndpointSet, GreCredentials
from .models.documents import DocumentInterface
from .models.responses import StatusResult, SummaryResult
from .services.api_client import SunatApiClient
from .services.sender import GreSender
from .services.token_manager import GreTokenManager
from .services.xml_builder import DEFAULT_OPTIONS, XmlBuilderResolver
from .services.xml_signer import CertificateMaterial, XmlSigner
from .utils.exceptions import ConfigurationError, GreException

logger = logging.getLogger(__name__)

ClientFactory = Callable[[EndpointSet], SunatApiClient]
ResolverFactory = Callable[[Dict[str, Any]], XmlBuilderResolver]


def default_client_factory(config: Settings = default_settings) -> ClientFactory:
    """Crea un SunatApiClient por operación con los parámetros HTTP de la configuración"""

    def factory(endpoints: EndpointSet) -> SunatApiClient:
        return SunatApiClient(
            endpoints,
            timeout=config.HTTP_TIMEOUT,
            scope=config.SCOPE,
            user_agent=config.USER_AGENT,
        )

    return factory


class GreApi:
    """
    Punto de entrada para el envío de guías de remisión

    Guarda la configuración (credenciales, endpoints, opciones del generador
    XML) como valores inmutables que cada setter reemplaza por completo, y
    arma los colaboradores en cada llamada. Solo la caché de tokens se
    comparte entre llamadas.
    """

    def __init__(
        self,
        signer: Optional[XmlSigner] = None,
        client_factory: Optional[ClientFactory] = None,
        token_manager: Optional[GreTokenManager] = None,
        builder_resolver_factory: Optional[ResolverFactory] = None,
        require_sol_credentials: bool = False,
    ):
        """
        Args:
            signer: Firmador XML (XmlSigner sin certificado por defecto)
            client_factory: Crea el cliente HTTP para un conjunto de endpoints
            token_manager: Caché de tokens de esta instancia
            builder_resolver_factory: Crea el resolvedor de generadores XML a partir de las opciones
            require_sol_credentials: Exigir Clave SOL además de client_id/secret
        """
        self.signer = signer if signer is not None else XmlSigner()
        self.client_factory = client_factory or default_client_factory()
        self.token_manager = token_manager or GreTokenManager(expiry_buffer=default_settings.TOKEN_EXPIRY_BUFFER)
        self.builder_resolver_factory = builder_resolver_factory or XmlBuilderResolver
        self.require_sol_credentials = require_sol_credentials

        self._credentials = GreCredentials()
        self._endpoints = EndpointSet()
        self._options: Dict[str, Any] = dict(DEFAULT_OPTIONS)

    @classmethod
    def from_settings(cls, config: Settings = default_settings, **kwargs) -> "GreApi":
        """Construir la fachada a partir de variables de entorno"""
        kwargs.setdefault("client_factory", default_client_factory(config))
        kwargs.setdefault("token_manager", GreTokenManager(expiry_buffer=config.TOKEN_EXPIRY_BUFFER))
        kwargs.setdefault("require_sol_credentials", config.REQUIRE_SOL)

        api = cls(**kwargs).set_endpoints(config.endpoints)
        if config.CLIENT_ID and config.CLIENT_SECRET:
            api.set_api_credentials(config.CLIENT_ID, config.CLIENT_SECRET)
        if config.RUC and config.SOL_USER and config.SOL_PASSWORD:
            api.set_clave_sol(config.RUC, config.SOL_USER, config.SOL_PASSWORD)
        if config.CERT_PATH:
            api.set_certificate(config.CERT_PATH, config.CERT_PASSWORD or None)
        return api

    # Configuración

    @property
    def credentials(self) -> GreCredentials:
        return self._credentials

    @property
    def endpoints(self) -> EndpointSet:
        return self._endpoints

    @property
    def builder_options(self) -> Dict[str, Any]:
        return dict(self._options)

    def set_builder_options(self, options: Mapping[str, Any]) -> "GreApi":
        """Combinar opciones del generador XML; las claves no indicadas se conservan"""
        self._options = {**self._options, **dict(options)}
        return self

    def set_endpoints(self, endpoints: Mapping[str, str]) -> "GreApi":
        """
        Reemplazar las URLs base

        Args:
            endpoints: {"api": url de seguridad, "cpe": url de envío}
        """
        missing = [key for key in ("api", "cpe") if not endpoints.get(key)]
        if missing:
            raise ConfigurationError(f"Endpoints requeridos: {', '.join(missing)}")

        try:
            self._endpoints = EndpointSet(api=endpoints["api"], cpe=endpoints["cpe"])
        except ValidationError as e:
            raise ConfigurationError(f"Endpoints inválidos: {e}")
        return self

    def set_api_credentials(self, client_id: str, secret: str) -> "GreApi":
        self._credentials = self._credentials.model_copy(update={"client_id": client_id, "client_secret": secret})
        return self

    def set_clave_sol(self, ruc: str, user: str, password: str) -> "GreApi":
        """Clave SOL de usuario secundario: el usuario es RUC + usuario, sin separador"""
        self._credentials = self._credentials.model_copy(update={"username": f"{ruc}{user}", "password": password})
        return self

    set_legacy_credentials = set_clave_sol

    def set_certificate(self, certificate: CertificateMaterial, password: Optional[str] = None) -> "GreApi":
        self.signer.set_certificate(certificate, password)
        return self

    def is_ready(self) -> bool:
        return self._credentials_error(self._credentials) is None and self.signer.has_certificate()

    # Operaciones

    def _credentials_error(self, credentials: GreCredentials) -> Optional[str]:
        if not credentials.is_api_ready():
            return "Credenciales API no configuradas (client_id / client_secret)"
        if self.require_sol_credentials and not credentials.has_sol():
            return "Clave SOL no configurada"
        return None

    def _ensure_credentials(self, credentials: GreCredentials):
        error = self._credentials_error(credentials)
        if error:
            raise ConfigurationError(error)

    def send(self, document: DocumentInterface) -> SummaryResult:
        """
        Envía comprobante

        Construye el XML según el tipo del documento, lo firma y lo envía.
        No se realiza ninguna llamada de red si falta configuración o si
        la generación o la firma fallan.

        Args:
            document: Documento a enviar

        Returns:
            SummaryResult: Ticket asignado por SUNAT

        Raises:
            ConfigurationError, BuilderNotFoundError, BuilderError, SigningError,
            AuthError, TransportError, ApiError
        """
        credentials, endpoints, options = self._credentials, self._endpoints, dict(self._options)

        try:
            self._ensure_credentials(credentials)
            if not self.signer.has_certificate():
                raise ConfigurationError("Certificado no configurado")

            resolver = self.builder_resolver_factory(options)
            builder = resolver.find(type(document))

            name = document.get_name()
            xml = builder.build(document)
            signed_xml = self.signer.sign_xml(xml)

            with self.client_factory(endpoints) as client:
                sender = GreSender(client, self.token_manager, credentials)
                return sender.send(name, signed_xml)
        except GreException as e:
            logger.error(f"[GRE] send: {type(e).__name__}: {e}")
            raise

    def get_status(self, ticket: Optional[str]) -> StatusResult:
        """
        Consultar el estado del envío

        Args:
            ticket: Ticket devuelto por send()

        Returns:
            StatusResult: Estado del ticket y CDR si fue generado
        """
        credentials, endpoints = self._credentials, self._endpoints

        try:
            self._ensure_credentials(credentials)
            if ticket is None or not str(ticket).strip():
                raise ConfigurationError("Ticket requerido para consultar estado")

            with self.client_factory(endpoints) as client:
                sender = GreSender(client, self.token_manager, credentials)
                return sender.status(ticket)
        except GreException as e:
            logger.error(f"[GRE] get_status {ticket!r}: {type(e).__name__}: {e}")
            raise


def create_default_api(config: Settings = default_settings) -> GreApi:
    """Fachada con colaboradores por defecto y la configuración de entorno aplicada"""
    return GreApi.from_settings(config)
