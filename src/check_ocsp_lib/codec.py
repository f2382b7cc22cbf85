'''
OCSP request/response encoding. A thin layer over cryptography.x509.ocsp.

parse_response_for_cert() returns the response only if it is for our
certificate and it's signed by the issuer or by a delegated responder
the issuer trusts.
'''

import enum
import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import (
        dsa, ec, ed448, ed25519, padding, rsa)
from cryptography.x509 import ocsp
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID

from check_ocsp_lib.errors import CodecError


class CertStatus(enum.Enum):
    GOOD = 'GOOD'
    REVOKED = 'REVOKED'
    UNKNOWN = 'UNKNOWN'


_STATUS = {
    ocsp.OCSPCertStatus.GOOD: CertStatus.GOOD,
    ocsp.OCSPCertStatus.REVOKED: CertStatus.REVOKED,
    ocsp.OCSPCertStatus.UNKNOWN: CertStatus.UNKNOWN,
}


@dataclass(frozen=True)
class OCSPResponse:
    '''Decoded single response for one certificate. Times are UTC aware.'''
    status: CertStatus
    this_update: datetime
    next_update: Optional[datetime] = None
    produced_at: Optional[datetime] = None
    serial_number: int = 0
    revocation_time: Optional[datetime] = None
    revocation_reason: Optional[str] = None


def create_request(cert: x509.Certificate, issuer: x509.Certificate,
                   hash_algorithm: hashes.HashAlgorithm = hashes.SHA1()
                   ) -> bytes:
    '''Build DER encoded OCSP request. No nonce.'''
    builder = ocsp.OCSPRequestBuilder().add_certificate(
            cert, issuer, hash_algorithm)
    return builder.build().public_bytes(serialization.Encoding.DER)

def _hash(algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    digest = hashes.Hash(algorithm)
    digest.update(data)
    return digest.finalize()

def _is_responder(resp: ocsp.OCSPResponse, cert: x509.Certificate) -> bool:
    '''Does the responder ID of the response name this certificate?'''
    if resp.responder_name is not None:
        return resp.responder_name == cert.subject
    key_hash = x509.SubjectKeyIdentifier.from_public_key(
            cert.public_key()).digest
    return resp.responder_key_hash == key_hash

def _find_signer(resp: ocsp.OCSPResponse,
                 issuer: x509.Certificate) -> x509.Certificate:
    if _is_responder(resp, issuer):
        return issuer

    for cert in resp.certificates:
        if not _is_responder(resp, cert):
            continue
        try:
            cert.verify_directly_issued_by(issuer)
        except (ValueError, TypeError, InvalidSignature) as err:
            raise CodecError(
                    f'responder certificate is not issued by the issuer: '
                    f'{err}') from err
        try:
            eku = cert.extensions.get_extension_for_oid(
                    ExtensionOID.EXTENDED_KEY_USAGE).value
        except x509.ExtensionNotFound:
            eku = []
        if ExtendedKeyUsageOID.OCSP_SIGNING not in eku:
            raise CodecError('responder certificate has no OCSP signing usage')
        return cert

    raise CodecError('no certificate found for the responder')

def _check_signature(resp: ocsp.OCSPResponse, signer: x509.Certificate):
    key = signer.public_key()
    signature = resp.signature
    data = resp.tbs_response_bytes
    try:
        algorithm = resp.signature_hash_algorithm
        if isinstance(key, rsa.RSAPublicKey):
            key.verify(signature, data, padding.PKCS1v15(), algorithm)
        elif isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signature, data, ec.ECDSA(algorithm))
        elif isinstance(key, dsa.DSAPublicKey):
            key.verify(signature, data, algorithm)
        elif isinstance(key, (ed25519.Ed25519PublicKey,
                              ed448.Ed448PublicKey)):
            key.verify(signature, data)
        else:
            raise CodecError(
                    f'unsupported responder key {type(key).__name__}')
    except InvalidSignature as err:
        raise CodecError('bad OCSP response signature') from err
    except UnsupportedAlgorithm as err:
        raise CodecError(f'unsupported signature algorithm: {err}') from err

def parse_response_for_cert(data: bytes, cert: x509.Certificate,
                            issuer: x509.Certificate) -> OCSPResponse:
    '''
    Decode DER OCSP response and check it covers cert.
    Raise CodecError if:
        the data is malformed,
        the responder returned an error status,
        there is no single response for the cert,
        signature is bad or made by someone we don't trust.
    '''
    try:
        resp = ocsp.load_der_ocsp_response(data)
    except ValueError as err:
        raise CodecError(f'malformed OCSP response: {err}') from err

    if resp.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
        raise CodecError(
                f'OCSP responder error status: {resp.response_status.name}')

    subject_hash = issuer.subject.public_bytes()
    single = None
    for candidate in resp.responses:
        if candidate.serial_number != cert.serial_number:
            continue
        try:
            name_hash = _hash(candidate.hash_algorithm, subject_hash)
        except (UnsupportedAlgorithm, ValueError) as err:
            raise CodecError(f'unsupported CertID hash: {err}') from err
        if candidate.issuer_name_hash == name_hash:
            single = candidate
            break
    if single is None:
        raise CodecError('no response for serial '
                         f'{cert.serial_number:X} in OCSP response')

    _check_signature(resp, _find_signer(resp, issuer))

    revocation_reason = None
    if single.revocation_reason is not None:
        revocation_reason = single.revocation_reason.value
    return OCSPResponse(
            status=_STATUS[single.certificate_status],
            this_update=single.this_update_utc,
            next_update=single.next_update_utc,
            produced_at=resp.produced_at_utc,
            serial_number=single.serial_number,
            revocation_time=single.revocation_time_utc,
            revocation_reason=revocation_reason)

def request_fingerprint(request: bytes) -> str:
    '''Short ID of a request for log messages.'''
    return hashlib.sha1(request).hexdigest()[:12]
