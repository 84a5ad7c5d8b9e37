"""
Inicializador de servicios GRE
"""

from .api_client import SunatApiClient
from .token_manager import GreTokenManager, InMemoryTokenStore, TokenStore
from .sender import GreSender
from .xml_builder import XmlBuilderResolver, TemplateXmlBuilder
from .xml_signer import XmlSigner
from .cdr_reader import read_cdr

__all__ = [
    "SunatApiClient",
    "GreTokenManager",
    "InMemoryTokenStore",
    "TokenStore",
    "GreSender",
    "XmlBuilderResolver",
    "TemplateXmlBuilder",
    "XmlSigner",
    "read_cdr"
]
