"""
Pruebas de firma XML
"""
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from lxml import etree

from conftest import to_pem
from sunat_gre.models.documents import Despatch
from sunat_gre.services.xml_builder import XmlBuilderResolver
from sunat_gre.services.xml_signer import DS_NS, EXT_NS, XmlSigner
from sunat_gre.utils.exceptions import SigningError


@pytest.fixture
def signer(certificate_pem):
    return XmlSigner().set_certificate(certificate_pem)


@pytest.fixture
def unsigned_xml(despatch):
    return XmlBuilderResolver().find(Despatch).build(despatch)


def test_signature_inside_extension_content(signer, unsigned_xml):
    signed = signer.sign_xml(unsigned_xml)

    assert signed.startswith("<?xml")
    root = etree.fromstring(signed.encode("utf-8"))
    signatures = root.findall(f".//{{{DS_NS}}}Signature")
    assert len(signatures) == 1
    assert signatures[0].get("Id") == "SignatureSP"
    assert signatures[0].getparent().tag == f"{{{EXT_NS}}}ExtensionContent"
    assert signatures[0].find(f".//{{{DS_NS}}}X509Certificate") is not None


def test_signed_xml_verifies(signer, unsigned_xml):
    assert signer.verify(signer.sign_xml(unsigned_xml))


def test_tampered_xml_fails_verification(signer, unsigned_xml):
    signed = signer.sign_xml(unsigned_xml)

    assert not signer.verify(signed.replace("PRODUCTO 1", "PRODUCTO 9"))


def test_pkcs12_with_password(rsa_key, certificate, unsigned_xml):
    pfx = pkcs12.serialize_key_and_certificates(
        b"emisor", rsa_key, certificate, None, BestAvailableEncryption(b"clave"),
    )

    signer = XmlSigner().set_certificate(pfx, "clave")

    assert signer.has_certificate()
    assert signer.verify(signer.sign_xml(unsigned_xml))


def test_pkcs12_wrong_password(rsa_key, certificate):
    pfx = pkcs12.serialize_key_and_certificates(
        b"emisor", rsa_key, certificate, None, BestAvailableEncryption(b"clave"),
    )

    with pytest.raises(SigningError):
        XmlSigner().set_certificate(pfx, "otra")


def test_certificate_from_file(tmp_path, certificate_pem):
    path = tmp_path / "certificado.pem"
    path.write_text(certificate_pem)

    assert XmlSigner().set_certificate(str(path)).has_certificate()
    assert XmlSigner().set_certificate(Path(path)).has_certificate()


def test_sign_without_certificate(unsigned_xml):
    with pytest.raises(SigningError):
        XmlSigner().sign_xml(unsigned_xml)


@pytest.mark.parametrize("material", [
    "-----BEGIN CERTIFICATE-----\nno-es-base64\n-----END CERTIFICATE-----\n",
    "/ruta/que/no/existe.pem",
    b"no es un pfx",
])
def test_invalid_certificate(material):
    with pytest.raises(SigningError):
        XmlSigner().set_certificate(material)


def test_pem_without_private_key(certificate_pem):
    cert_only = certificate_pem[certificate_pem.index("-----BEGIN CERTIFICATE-----"):]

    with pytest.raises(SigningError):
        XmlSigner().set_certificate(cert_only)


def test_key_does_not_match_certificate(certificate):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    with pytest.raises(SigningError):
        XmlSigner().set_certificate(to_pem(other_key, certificate))


def test_expired_certificate(rsa_key, expired_certificate):
    with pytest.raises(SigningError):
        XmlSigner().set_certificate(to_pem(rsa_key, expired_certificate))


def test_malformed_xml(signer):
    with pytest.raises(SigningError):
        signer.sign_xml("<DespatchAdvice>")


def test_certificate_info(signer):
    info = signer.get_certificate_info()

    assert "20123456789" in info["subject"]
    assert info["not_valid_after"] > info["not_valid_before"]
    assert XmlSigner().get_certificate_info() == {}


def test_failed_load_keeps_previous_certificate(signer, certificate, rsa_key, expired_certificate, unsigned_xml):
    with pytest.raises(SigningError):
        signer.set_certificate(to_pem(rsa_key, expired_certificate))

    assert signer.has_certificate()
    assert signer.certificate == certificate
    assert signer.certificate != expired_certificate
    assert signer.verify(signer.sign_xml(unsigned_xml))


def test_failed_first_load_leaves_signer_empty(rsa_key, expired_certificate):
    signer = XmlSigner()

    with pytest.raises(SigningError):
        signer.set_certificate(to_pem(rsa_key, expired_certificate))

    assert not signer.has_certificate()
    assert signer.get_certificate_info() == {}


def test_non_rsa_key_rejected(certificate):
    with pytest.raises(SigningError):
        XmlSigner().set_certificate(to_pem(ed25519.Ed25519PrivateKey.generate(), certificate))
