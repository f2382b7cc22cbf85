'''Test PKI: a CA, leaf certificates and OCSP responses made on the fly.'''

import asyncio
from datetime import datetime, timedelta

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509 import ocsp
from cryptography.x509.oid import (AuthorityInformationAccessOID,
                                   ExtendedKeyUsageOID, NameOID)
from pytz import UTC


RESPONDER_URLS = ('http://ocsp1.test/', 'http://ocsp2.test/',
                  'http://ocsp3.test/')
# Marks "no nextUpdate" in make_response()
NO_NEXT_UPDATE = object()


def naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(UTC).replace(tzinfo=None)

def make_key():
    return ec.generate_private_key(ec.SECP256R1())

def make_cert(cn: str, key, issuer=None, issuer_key=None, ca=False,
              ocsp_urls=(), must_staple=False, ocsp_signing=False):
    now = datetime.now(UTC)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    builder = (x509.CertificateBuilder()
               .subject_name(subject)
               .issuer_name(issuer.subject if issuer else subject)
               .public_key(key.public_key())
               .serial_number(x509.random_serial_number())
               .not_valid_before(naive_utc(now - timedelta(days=1)))
               .not_valid_after(naive_utc(now + timedelta(days=30)))
               .add_extension(x509.BasicConstraints(ca=ca, path_length=None),
                              critical=True))
    if ocsp_urls:
        builder = builder.add_extension(x509.AuthorityInformationAccess([
            x509.AccessDescription(AuthorityInformationAccessOID.OCSP,
                                   x509.UniformResourceIdentifier(url))
            for url in ocsp_urls]), critical=False)
    if must_staple:
        builder = builder.add_extension(
                x509.TLSFeature([x509.TLSFeatureType.status_request]),
                critical=False)
    if ocsp_signing:
        builder = builder.add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.OCSP_SIGNING]),
                critical=False)
    return builder.sign(issuer_key or key, hashes.SHA256())


class PKI:
    '''A CA which issues leaf certificates and signs OCSP responses.'''
    def __init__(self, name: str = 'Test CA'):
        self.key = make_key()
        self.cert = make_cert(name, self.key, ca=True)

    def leaf(self, cn: str = 'server.test', **kwargs):
        return make_cert(cn, make_key(), self.cert, self.key, **kwargs)

    def response(self, cert, status=ocsp.OCSPCertStatus.GOOD,
                 this_update=None, next_update=None,
                 signer=None, signer_key=None, certificates=None) -> bytes:
        '''DER OCSP response for cert, signed by the CA by default.'''
        now = datetime.now(UTC)
        if this_update is None:
            this_update = now - timedelta(hours=1)
        if next_update is None:
            next_update = now + timedelta(hours=1)
        elif next_update is NO_NEXT_UPDATE:
            next_update = None
        revocation_time = None
        revocation_reason = None
        if status == ocsp.OCSPCertStatus.REVOKED:
            revocation_time = naive_utc(now - timedelta(days=1))
            revocation_reason = x509.ReasonFlags.key_compromise

        builder = ocsp.OCSPResponseBuilder().add_response(
                cert=cert, issuer=self.cert, algorithm=hashes.SHA1(),
                cert_status=status,
                this_update=naive_utc(this_update),
                next_update=naive_utc(next_update) if next_update else None,
                revocation_time=revocation_time,
                revocation_reason=revocation_reason)
        builder = builder.responder_id(ocsp.OCSPResponderEncoding.HASH,
                                       signer or self.cert)
        if certificates:
            builder = builder.certificates(certificates)
        response = builder.sign(signer_key or self.key, hashes.SHA256())
        return response.public_bytes(serialization.Encoding.DER)


ECDSA_SHA256_OID = b'\x06\x08\x2a\x86\x48\xce\x3d\x04\x03\x02'
SHA1_OID = b'\x06\x05\x2b\x0e\x03\x02\x1a'

def with_unknown_oid(data: bytes, oid: bytes = ECDSA_SHA256_OID) -> bytes:
    '''Replace an algorithm OID in DER data with one nobody knows.'''
    assert data.count(oid) == 1
    return data.replace(oid, oid[:-1] + b'\x09')

def error_response(status=ocsp.OCSPResponseStatus.TRY_LATER) -> bytes:
    return ocsp.OCSPResponseBuilder.build_unsuccessful(status).public_bytes(
            serialization.Encoding.DER)


class FakeResponders:
    '''
    httpx transport which plays OCSP responders. handlers maps host name
    to a coroutine function(request) -> httpx.Response.
    '''
    def __init__(self, handlers: dict):
        self.handlers = handlers
        self.calls: list = []
        self.in_flight = 0
        self.cancelled = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.host)
        handler = self.handlers.get(request.url.host)
        if handler is None:
            return httpx.Response(404)
        self.in_flight += 1
        try:
            return await handler(request)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def answer(content: bytes, delay: float = 0, status_code: int = 200):
    async def handler(request):
        await asyncio.sleep(delay)
        return httpx.Response(status_code, content=content)
    return handler

def stall():
    async def handler(request):
        await asyncio.sleep(3600)
    return handler

def refuse():
    async def handler(request):
        raise httpx.ConnectError('Connection refused', request=request)
    return handler


@pytest.fixture
def pki():
    return PKI()

@pytest.fixture
def leaf(pki):
    return pki.leaf(ocsp_urls=RESPONDER_URLS)
