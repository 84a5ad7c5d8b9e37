# Configuración global del cliente GRE
import logging
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    # Endpoints SUNAT
    API_URL: str = os.getenv("GRE_API_URL", "https://api-seguridad.sunat.gob.pe/v1")
    CPE_URL: str = os.getenv("GRE_CPE_URL", "https://api.sunat.gob.pe/v1")
    SCOPE: str = os.getenv("GRE_SCOPE", "https://api-cpe.sunat.gob.pe")

    # HTTP
    HTTP_TIMEOUT: float = float(os.getenv("GRE_HTTP_TIMEOUT", "30"))
    USER_AGENT: str = os.getenv("GRE_USER_AGENT", "sunat-gre/1.0.0")

    # Tokens: segundos antes de la expiración en que el token se considera vencido
    TOKEN_EXPIRY_BUFFER: int = int(os.getenv("GRE_TOKEN_EXPIRY_BUFFER", "60"))

    # Credenciales API
    CLIENT_ID: str = os.getenv("GRE_CLIENT_ID", "")
    CLIENT_SECRET: str = os.getenv("GRE_CLIENT_SECRET", "")

    # Clave SOL
    RUC: str = os.getenv("GRE_RUC", "")
    SOL_USER: str = os.getenv("GRE_SOL_USER", "")
    SOL_PASSWORD: str = os.getenv("GRE_SOL_PASSWORD", "")
    REQUIRE_SOL: bool = _env_bool("GRE_REQUIRE_SOL", "false")

    # Certificado digital (PEM o PFX)
    CERT_PATH: str = os.getenv("GRE_CERT_PATH", "")
    CERT_PASSWORD: str = os.getenv("GRE_CERT_PASSWORD", "")

    # Aplicación
    DEBUG: bool = _env_bool("GRE_DEBUG", "false")

    @property
    def endpoints(self) -> dict:
        return {"api": self.API_URL, "cpe": self.CPE_URL}


settings = Settings()


def configure_logging(level: int = logging.INFO) -> None:
    """Logging básico para scripts y depuración"""
    if settings.DEBUG:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
