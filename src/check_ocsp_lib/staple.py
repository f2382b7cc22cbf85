'''Check OCSP response stapled by the server to the TLS handshake.'''

import logging
from typing import Optional

from cryptography import x509

from check_ocsp_lib import codec as default_codec
from check_ocsp_lib.codec import OCSPResponse
from check_ocsp_lib.config import Config
from check_ocsp_lib.errors import CodecError, StapleError


# TLS Feature extension, status_request. RFC 7633
MUST_STAPLE_OID = x509.ObjectIdentifier('1.3.6.1.5.5.7.1.24')


def has_must_staple(cert: x509.Certificate) -> bool:
    '''Is the server obliged to staple OCSP response?'''
    for extension in cert.extensions:
        if extension.oid == MUST_STAPLE_OID:
            return True
    return False

def parse_staple(cfg: Config, staple: bytes,
                 codec=default_codec) -> Optional[OCSPResponse]:
    '''
    Return: decoded stapled response or None if there is no staple.
    Raise StapleError if:
        the certificate is Must-Staple but the staple is empty,
        the staple is malformed or doesn't cover the server certificate,
        the staple carries an error status of the responder.
    '''
    logger = logging.getLogger(__name__)
    must_staple = has_must_staple(cfg.server_cert)

    if must_staple and len(staple) == 0:
        raise StapleError('server provided a certificate with the '
                          'Must-Staple extension but did not provide '
                          'a stapled OCSP response')
    if len(staple) == 0:
        logger.debug('No stapled OCSP response')
        return None

    try:
        response = codec.parse_response_for_cert(
                staple, cfg.server_cert, cfg.issuer)
    except CodecError as err:
        raise StapleError(f'error parsing stapled response: {err}') from err

    logger.debug('Stapled OCSP response: %s', response.status.value)
    return response
