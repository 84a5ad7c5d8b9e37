"""
Gestor de tokens GRE
Maneja el almacenamiento, validación y renovación de tokens
"""

import threading
from datetime import datetime
from typing import Callable, Dict, Optional, Protocol
import logging

import pytz

from ..models.auth import GreCredentials, GreToken, GreTokenData

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(pytz.UTC)


class TokenStore(Protocol):
    """Almacenamiento de tokens por clave de credenciales"""

    def get(self, key: str) -> Optional[GreToken]: ...

    def set(self, key: str, token: GreToken) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryTokenStore:
    """Store en memoria, un token por clave"""

    def __init__(self):
        self._tokens: Dict[str, GreToken] = {}

    def get(self, key: str) -> Optional[GreToken]:
        return self._tokens.get(key)

    def set(self, key: str, token: GreToken) -> None:
        self._tokens[key] = token

    def delete(self, key: str) -> None:
        self._tokens.pop(key, None)

    def __len__(self) -> int:
        return len(self._tokens)


class GreTokenManager:
    """Caché de tokens de acceso, con renovación al expirar"""

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        expiry_buffer: int = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Inicializar gestor de tokens

        Args:
            store: Almacenamiento de tokens (en memoria por defecto)
            expiry_buffer: Segundos antes de la expiración en que el token deja de usarse
            clock: Función que retorna la hora actual (UTC, con zona horaria)
        """
        self.store = store if store is not None else InMemoryTokenStore()
        self.expiry_buffer = expiry_buffer
        self.clock = clock or utcnow
        self._lock = threading.Lock()

    def get_valid_token(self, credentials: GreCredentials) -> Optional[GreToken]:
        """
        Obtener token en caché si aún es válido

        Un token expirado se elimina del store y nunca se retorna.
        """
        key = credentials.cache_key()
        token = self.store.get(key)
        if token is None:
            return None

        if token.is_expired(self.clock(), self.expiry_buffer):
            logger.debug(f"[TOKEN] Token expirado en {token.expires_at.isoformat()}, descartado")
            self.store.delete(key)
            return None

        return token

    def get_or_refresh(
        self,
        credentials: GreCredentials,
        authenticate: Callable[[GreCredentials], GreTokenData],
    ) -> GreToken:
        """
        Obtener token válido, autenticando de nuevo si no hay uno en caché

        Args:
            credentials: Credenciales del emisor
            authenticate: Intercambio de credenciales por token

        Returns:
            GreToken: Token vigente

        Raises:
            AuthError, TransportError: Propagados desde authenticate
        """
        with self._lock:
            token = self.get_valid_token(credentials)
            if token is not None:
                return token

            token_data = authenticate(credentials)
            token = GreToken.from_token_data(token_data, self.clock())
            self.store.set(credentials.cache_key(), token)

            logger.info(
                f"[TOKEN] Nuevo token {token.access_token[:8]}... válido hasta {token.expires_at.isoformat()}"
            )
            return token

    def invalidate(self, credentials: GreCredentials) -> None:
        """Descartar el token en caché (p. ej. tras un 401)"""
        with self._lock:
            self.store.delete(credentials.cache_key())
        logger.debug("[TOKEN] Token invalidado")
