"""
Firma digital XML para comprobantes electrónicos SUNAT

- XML Digital Signature Enveloped
- Firma ubicada en ext:UBLExtensions/ext:UBLExtension/ext:ExtensionContent
- Certificado X.509 en KeyInfo
- RSA-SHA256, digest SHA-256, canonicalización C14N 1.0
"""

import re
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from lxml import etree
from signxml import XMLSigner, XMLVerifier, methods
from signxml.algorithms import CanonicalizationMethod, DigestAlgorithm, SignatureMethod
from signxml.exceptions import SignXMLException

from ..utils.exceptions import SigningError

logger = logging.getLogger(__name__)

DS_NS = "http://www.w3.org/2000/09/xmldsig#"
EXT_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonExtensionComponents-2"

_PEM_BLOCK_RE = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----.+?-----END \1-----", re.S)

CertificateMaterial = Union[str, bytes, Path]

_SPKI_ENCODING = serialization.Encoding.DER
_SPKI_FORMAT = serialization.PublicFormat.SubjectPublicKeyInfo


class XmlSigner:
    """Firma XML con el certificado digital del emisor"""

    def __init__(self, signature_id: str = "SignatureSP"):
        self.signature_id = signature_id
        self.private_key = None
        self.certificate: Optional[x509.Certificate] = None
        self.additional_certificates: List[x509.Certificate] = []

    def has_certificate(self) -> bool:
        return self.private_key is not None and self.certificate is not None

    def set_certificate(self, material: CertificateMaterial, password: Optional[str] = None) -> "XmlSigner":
        """
        Cargar certificado y clave privada

        Args:
            material: PEM (clave + certificado), PFX/P12 en bytes, o ruta a cualquiera de ellos
            password: Contraseña del PFX o de la clave PEM

        Raises:
            SigningError: Certificado ilegible, sin clave privada o expirado
        """
        data = self._read_material(material)
        pwd = password.encode() if password else None

        if b"-----BEGIN" in data:
            key, certificates = self._load_pem(data, pwd)
        else:
            key, certificates = self._load_pkcs12(data, pwd)

        signing, additional = self._select_signing_certificate(key, certificates)
        self._validate_certificate(signing)

        self.private_key = key
        self.certificate = signing
        self.additional_certificates = additional
        logger.info(f"[SIGNER] Certificado cargado. Sujeto: {signing.subject.rfc4514_string()}, "
                    f"válido hasta: {signing.not_valid_after_utc}")
        return self

    @staticmethod
    def _read_material(material: CertificateMaterial) -> bytes:
        if isinstance(material, Path):
            return material.read_bytes()

        if isinstance(material, str):
            if "-----BEGIN" not in material:
                try:
                    path = Path(material).expanduser()
                    if path.is_file():
                        return path.read_bytes()
                except OSError:
                    pass
                raise SigningError(f"Certificado no encontrado: {material[:80]}")
            return material.encode("utf-8")

        return bytes(material)

    @staticmethod
    def _load_pem(data: bytes, password: Optional[bytes]) -> Tuple[Any, List[x509.Certificate]]:
        """Carga clave y certificados desde bloques PEM concatenados"""
        key = None
        certificates = []
        try:
            for match in _PEM_BLOCK_RE.finditer(data):
                label, block = match.group(1), match.group(0)
                if b"PRIVATE KEY" in label:
                    key = serialization.load_pem_private_key(block, password=password)
                elif label == b"CERTIFICATE":
                    certificates.append(x509.load_pem_x509_certificate(block))
        except (ValueError, TypeError) as e:
            raise SigningError(f"Error al cargar certificado PEM: {e}")

        if key is None:
            raise SigningError("El PEM no contiene clave privada")
        if not certificates:
            raise SigningError("El PEM no contiene certificado")

        return key, certificates

    @staticmethod
    def _load_pkcs12(data: bytes, password: Optional[bytes]) -> Tuple[Any, List[x509.Certificate]]:
        try:
            key, certificate, additional = pkcs12.load_key_and_certificates(data, password)
        except (ValueError, TypeError) as e:
            raise SigningError(f"Error al cargar certificado PKCS#12: {e}")

        if key is None:
            raise SigningError("No se pudo extraer la clave privada del certificado")
        if certificate is None:
            raise SigningError("No se pudo extraer el certificado del archivo")

        return key, [certificate] + list(additional or [])

    @staticmethod
    def _select_signing_certificate(key, certificates: List[x509.Certificate]):
        """Retorna (certificado de firma, certificados adicionales)"""
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningError(f"Tipo de clave no soportado para RSA-SHA256: {type(key).__name__}")

        public_key = key.public_key().public_bytes(_SPKI_ENCODING, _SPKI_FORMAT)
        signing = next(
            (c for c in certificates if c.public_key().public_bytes(_SPKI_ENCODING, _SPKI_FORMAT) == public_key),
            None,
        )
        if signing is None:
            raise SigningError("Ningún certificado corresponde a la clave privada")

        return signing, [c for c in certificates if c is not signing]

    @staticmethod
    def _validate_certificate(certificate: x509.Certificate):
        now = datetime.now(timezone.utc)

        if certificate.not_valid_after_utc < now:
            raise SigningError(f"Certificado expirado. Válido hasta: {certificate.not_valid_after_utc}")

        if certificate.not_valid_before_utc > now:
            raise SigningError(f"Certificado aún no válido. Válido desde: {certificate.not_valid_before_utc}")

    def _certificate_chain_pem(self) -> str:
        chain = [self.certificate] + self.additional_certificates
        return "".join(c.public_bytes(serialization.Encoding.PEM).decode("ascii") for c in chain)

    @staticmethod
    def _place_signature(root) -> None:
        """Ubica un placeholder ds:Signature en el ExtensionContent vacío"""
        if root.find(f".//{{{DS_NS}}}Signature[@Id='placeholder']") is not None:
            return

        for content in root.iter(f"{{{EXT_NS}}}ExtensionContent"):
            if len(content) == 0:
                placeholder = etree.SubElement(content, f"{{{DS_NS}}}Signature", nsmap={"ds": DS_NS})
                placeholder.set("Id", "placeholder")
                return

    def sign_xml(self, xml: str) -> str:
        """
        Firmar XML

        Args:
            xml: XML sin firmar

        Returns:
            str: XML firmado, con declaración XML

        Raises:
            SigningError: Sin certificado, XML inválido o fallo de firma
        """
        if not self.has_certificate():
            raise SigningError("Certificado no configurado")

        try:
            parser = etree.XMLParser(resolve_entities=False, no_network=True)
            root = etree.fromstring(xml.encode("utf-8"), parser)
            self._place_signature(root)

            signer = XMLSigner(
                method=methods.enveloped,
                signature_algorithm=SignatureMethod.RSA_SHA256,
                digest_algorithm=DigestAlgorithm.SHA256,
                c14n_algorithm=CanonicalizationMethod.CANONICAL_XML_1_0,
            )
            signed_root = signer.sign(root, key=self.private_key, cert=self._certificate_chain_pem())

            signature = signed_root.find(f".//{{{DS_NS}}}Signature")
            if signature is not None:
                signature.set("Id", self.signature_id)

            signed_xml = etree.tostring(signed_root, encoding="utf-8", xml_declaration=True).decode("utf-8")
        except (etree.LxmlError, SignXMLException, ValueError, TypeError) as e:
            raise SigningError(f"Error al firmar XML: {e}")

        logger.debug("[SIGNER] XML firmado exitosamente")
        return signed_xml

    def verify(self, signed_xml: str) -> bool:
        """Verificar la firma con el certificado cargado"""
        if not self.has_certificate():
            raise SigningError("Certificado no configurado")

        try:
            root = etree.fromstring(signed_xml.encode("utf-8"))
            cert_pem = self.certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
            XMLVerifier().verify(root, x509_cert=cert_pem)
            return True
        except (etree.LxmlError, SignXMLException) as e:
            logger.error(f"[SIGNER] Error al verificar firma: {e}")
            return False

    def get_certificate_info(self) -> dict:
        if not self.has_certificate():
            return {}

        return {
            "subject": self.certificate.subject.rfc4514_string(),
            "issuer": self.certificate.issuer.rfc4514_string(),
            "serial_number": str(self.certificate.serial_number),
            "not_valid_before": self.certificate.not_valid_before_utc.isoformat(),
            "not_valid_after": self.certificate.not_valid_after_utc.isoformat(),
        }
