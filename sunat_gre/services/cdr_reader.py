"""
Lectura de la Constancia de Recepción (CDR) devuelta por SUNAT
"""

import io
import zipfile
import logging
from typing import Optional

from lxml import etree

from ..models.responses import CdrResponse
from ..utils.exceptions import ApiError

logger = logging.getLogger(__name__)

NS = {
    "ar": "urn:oasis:names:specification:ubl:schema:xsd:ApplicationResponse-2",
    "cbc": "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2",
    "cac": "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2",
}

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def extract_cdr_xml(cdr_zip: bytes) -> bytes:
    """Retorna el primer XML contenido en el zip del CDR"""
    try:
        with zipfile.ZipFile(io.BytesIO(cdr_zip)) as zf:
            for name in zf.namelist():
                if name.lower().endswith(".xml"):
                    return zf.read(name)
    except zipfile.BadZipFile as e:
        raise ApiError(f"CDR no es un zip válido: {e}")

    raise ApiError("CDR sin archivo XML")


def _text(root, path: str) -> Optional[str]:
    node = root.find(path, NS)
    if node is None or node.text is None:
        return None
    return node.text.strip()


def read_cdr(cdr_zip: bytes) -> CdrResponse:
    """
    Parsear el ApplicationResponse del CDR

    Args:
        cdr_zip: Contenido del zip (ya decodificado de base64)

    Returns:
        CdrResponse: Código, descripción y observaciones
    """
    xml = extract_cdr_xml(cdr_zip)
    try:
        root = etree.fromstring(xml, _PARSER)
    except etree.XMLSyntaxError as e:
        raise ApiError(f"CDR con XML inválido: {e}")

    response_path = "cac:DocumentResponse/cac:Response/"
    cdr = CdrResponse(
        id=_text(root, "cbc:ID"),
        code=_text(root, response_path + "cbc:ResponseCode"),
        description=_text(root, response_path + "cbc:Description"),
        reference=_text(root, response_path + "cbc:ReferenceID"),
        notes=[n.text.strip() for n in root.findall("cbc:Note", NS) if n.text],
    )
    logger.debug(f"[CDR] {cdr.reference}: {cdr.code} {cdr.description}")
    return cdr
