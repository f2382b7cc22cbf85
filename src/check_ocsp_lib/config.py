'''
Take what we need for OCSP checks from a verified certificate chain:
the server certificate, its issuer and OCSP responders' URLs.
'''

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from cryptography import x509
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtensionOID
from OpenSSL import crypto

from check_ocsp_lib.errors import ConfigError


AnyCert = Union[x509.Certificate, crypto.X509]


@dataclass(frozen=True)
class Config:
    server_cert: x509.Certificate
    issuer: x509.Certificate
    responder_urls: Tuple[str, ...]


def to_cryptography(cert: AnyCert) -> x509.Certificate:
    '''pyOpenSSL gives us crypto.X509, the checks work with cryptography.'''
    if isinstance(cert, crypto.X509):
        return cert.to_cryptography()
    if isinstance(cert, x509.Certificate):
        return cert
    raise ConfigError(f'unsupported certificate type: {type(cert).__name__}')

def get_responder_urls(cert: x509.Certificate) -> Tuple[str, ...]:
    '''
    OCSP URLs from Authority Information Access extension in the order
    they are listed in the certificate.
    Return: tuple of URLs, empty if there is no such extension.
    '''
    try:
        aia = cert.extensions.get_extension_for_oid(
                ExtensionOID.AUTHORITY_INFORMATION_ACCESS).value
    except x509.ExtensionNotFound:
        return ()
    return tuple(desc.access_location.value for desc in aia
                 if desc.access_method == AuthorityInformationAccessOID.OCSP
                 and isinstance(desc.access_location,
                                x509.UniformResourceIdentifier))

def new_config(chain: Sequence[AnyCert]) -> Config:
    '''
    Get: verified chain, the server certificate first.
    A chain of one certificate is a self issued leaf. It's its own issuer.
    '''
    if len(chain) == 0:
        raise ConfigError('verified chain contained no certificates')

    server_cert = to_cryptography(chain[0])
    if len(chain) == 1:
        issuer = server_cert
    else:
        issuer = to_cryptography(chain[1])

    return Config(server_cert=server_cert, issuer=issuer,
                  responder_urls=get_responder_urls(server_cert))
