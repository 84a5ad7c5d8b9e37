"""
Generación de XML de comprobantes a partir de plantillas Jinja2
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol
import logging

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..models.documents import Despatch
from ..utils.exceptions import BuilderError, BuilderNotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

# Opciones que se pasan directamente al Environment de Jinja2
ENVIRONMENT_OPTIONS = ("autoescape", "trim_blocks", "lstrip_blocks", "keep_trailing_newline")

DEFAULT_OPTIONS = {"autoescape": False}


class XmlBuilder(Protocol):
    def build(self, document: Any) -> str: ...


def format_decimal(value: Any, decimals: int = 2) -> str:
    if value is None:
        return ""
    return f"{Decimal(str(value)):.{decimals}f}"


class TemplateXmlBuilder:
    """Renderiza un documento con una plantilla XML"""

    def __init__(self, template_name: str, options: Optional[Dict[str, Any]] = None, template_dir: Optional[Path] = None):
        self.template_name = template_name
        self.options = dict(DEFAULT_OPTIONS)
        self.options.update(options or {})

        env_kwargs = {k: self.options[k] for k in ENVIRONMENT_OPTIONS if k in self.options}
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            undefined=StrictUndefined,
            **env_kwargs,
        )
        self.env.filters["n"] = format_decimal
        self.env.globals["options"] = self.options

    def build(self, document: Any) -> str:
        try:
            template = self.env.get_template(self.template_name)
            xml = template.render(doc=document)
        except TemplateError as e:
            raise BuilderError(f"Error renderizando {self.template_name}: {e}")

        logger.debug(f"[BUILDER] {self.template_name} renderizado ({len(xml)} caracteres)")
        return xml


BuilderFactory = Callable[[Dict[str, Any]], XmlBuilder]

DEFAULT_BUILDERS: Dict[type, BuilderFactory] = {
    Despatch: lambda options: TemplateXmlBuilder("despatch.xml.j2", options),
}


class XmlBuilderResolver:
    """Resuelve el generador XML según el tipo del documento"""

    def __init__(self, options: Optional[Dict[str, Any]] = None, builders: Optional[Dict[type, BuilderFactory]] = None):
        self.options = dict(options or {})
        self.builders: Dict[type, BuilderFactory] = dict(DEFAULT_BUILDERS if builders is None else builders)

    def register(self, doc_type: type, factory: BuilderFactory) -> "XmlBuilderResolver":
        self.builders[doc_type] = factory
        return self

    def find(self, doc_type: type) -> XmlBuilder:
        """
        Buscar generador para un tipo de documento

        Se recorre el MRO, por lo que una subclase usa el generador de su
        clase base si no tiene uno propio.

        Raises:
            BuilderNotFoundError: Ningún generador registrado
        """
        for klass in doc_type.__mro__:
            factory = self.builders.get(klass)
            if factory is not None:
                return factory(self.options)

        raise BuilderNotFoundError(doc_type)
