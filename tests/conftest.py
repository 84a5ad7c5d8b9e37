"""
Fixtures compartidas para las pruebas GRE
"""
import os
import sys
import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

# Añadir raíz del proyecto al path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sunat_gre.api import GreApi
from sunat_gre.models.documents import Address, Client, Company, Despatch, DespatchDetail, Shipment
from sunat_gre.services.api_client import SunatApiClient
from sunat_gre.services.token_manager import GreTokenManager
from sunat_gre.services.xml_builder import XmlBuilderResolver

AUTH_URL = "https://auth.test"
CPE_URL = "https://sub.test"


class Invoice:
    """Documento mínimo para pruebas de la fachada"""

    def __init__(self, name: str = "20123456789-01-F001-1"):
        self.name = name

    def get_name(self) -> str:
        return self.name


class InvoiceBuilder:
    def __init__(self, options=None):
        self.options = options or {}

    def build(self, document) -> str:
        return "<Invoice/>"


class FakeSigner:
    """Firmador que no requiere certificado real"""

    def __init__(self):
        self.certificate = None
        self.signed = []

    def has_certificate(self) -> bool:
        return self.certificate is not None

    def set_certificate(self, material, password=None):
        self.certificate = material
        return self

    def sign_xml(self, xml: str) -> str:
        self.signed.append(xml)
        return '<Invoice Signature="S"/>'


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 10, 15, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int):
        self.now = self.now + timedelta(seconds=seconds)


class SunatMock:
    """Simula los servicios de seguridad y envío SUNAT"""

    def __init__(self):
        self.requests = []
        self.issued_tokens = 0
        self.expires_in = 3600
        self.auth_reply = None
        self.submit_reply = (200, {"numTicket": "T-1", "fecRecepcion": "2024-05-10T10:15:30"})
        self.status_reply = (200, {"codRespuesta": "98"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/oauth2/token/"):
            if self.auth_reply is not None:
                status, body = self.auth_reply
                return httpx.Response(status, json=body)
            self.issued_tokens += 1
            return httpx.Response(200, json={
                "access_token": f"tok-{self.issued_tokens}",
                "token_type": "Bearer",
                "expires_in": self.expires_in,
            })

        if "/envios/" in path:
            status, body = self.status_reply
        else:
            status, body = self.submit_reply

        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    def _of_kind(self, kind: str):
        result = []
        for request in self.requests:
            path = request.url.path
            if path.endswith("/oauth2/token/"):
                request_kind = "auth"
            elif "/envios/" in path:
                request_kind = "status"
            else:
                request_kind = "submit"
            if request_kind == kind:
                result.append(request)
        return result

    @property
    def auth_calls(self):
        return self._of_kind("auth")

    @property
    def submit_calls(self):
        return self._of_kind("submit")

    @property
    def status_calls(self):
        return self._of_kind("status")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self):
        return lambda endpoints: SunatApiClient(endpoints, transport=self.transport())


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def sunat():
    return SunatMock()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def invoice():
    return Invoice()


@pytest.fixture
def make_api(sunat, clock):
    """Fachada con firmador falso y generador de Invoice registrado"""

    def factory(**kwargs) -> GreApi:
        kwargs.setdefault("signer", FakeSigner())
        kwargs.setdefault("client_factory", sunat.client_factory())
        kwargs.setdefault("token_manager", GreTokenManager(expiry_buffer=60, clock=clock))
        kwargs.setdefault(
            "builder_resolver_factory",
            lambda options: XmlBuilderResolver(options, builders={Invoice: InvoiceBuilder}),
        )
        api = GreApi(**kwargs)
        api.set_endpoints({"api": AUTH_URL, "cpe": CPE_URL})
        return api

    return factory


@pytest.fixture
def ready_api(make_api):
    return make_api().set_api_credentials("X", "Y").set_certificate("CERT")


def _build_certificate(key, not_before, not_after):
    name = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "PE"),
        x509.NameAttribute(NameOID.COMMON_NAME, "20123456789 EMPRESA DE PRUEBA"),
    ])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key):
    now = datetime.now(timezone.utc)
    return _build_certificate(rsa_key, now - timedelta(days=1), now + timedelta(days=365))


@pytest.fixture(scope="session")
def expired_certificate(rsa_key):
    now = datetime.now(timezone.utc)
    return _build_certificate(rsa_key, now - timedelta(days=400), now - timedelta(days=30))


def to_pem(key, cert) -> str:
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return (key_pem + cert.public_bytes(serialization.Encoding.PEM)).decode("ascii")


@pytest.fixture(scope="session")
def certificate_pem(rsa_key, certificate):
    return to_pem(rsa_key, certificate)


@pytest.fixture
def despatch():
    return Despatch(
        serie="T001",
        correlativo="123",
        fecha_emision=datetime(2024, 5, 10, 9, 30, 0),
        company=Company(ruc="20123456789", razon_social="EMPRESA DE PRUEBA S.A.C."),
        destinatario=Client(num_doc="20000000001", rzn_social="CLIENTE S.A."),
        observacion="Entrega en almacén",
        envio=Shipment(
            cod_traslado="01",
            des_traslado="VENTA",
            mod_traslado="01",
            fec_traslado=date(2024, 5, 11),
            peso_total=Decimal("12.5"),
            num_bultos=2,
            partida=Address(ubigeo="150101", direccion="AV. LIMA 123"),
            llegada=Address(ubigeo="150203", direccion="JR. CALLAO 456"),
        ),
        details=[
            DespatchDetail(cantidad=Decimal("2"), descripcion="PRODUCTO 1", codigo="P001"),
            DespatchDetail(cantidad=Decimal("1.5"), unidad="KGM", descripcion="PRODUCTO 2"),
        ],
    )
