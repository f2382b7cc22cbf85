'''
OCSP verification of a TLS connection, right after the handshake.

verify() returns None if the connection may be trusted. Otherwise it
raises OCSPError. If we can't learn the certificate status (no staple and
no conclusive answer from responders) the connection is trusted.
'''

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from check_ocsp_lib import codec as default_codec
from check_ocsp_lib.config import AnyCert, new_config
from check_ocsp_lib.errors import (ConfigError, NetworkFatalError, OCSPError,
                                   ResponseInvalidError, StapleError)
from check_ocsp_lib.responders import contact_responders
from check_ocsp_lib.response import verify_response
from check_ocsp_lib.staple import parse_staple


@dataclass(frozen=True)
class ConnectionState:
    '''
    What we know after the handshake.
    verified_chains - chains built by the handshake verification, leaf first.
                      Only the first one is used.
    ocsp_response - stapled OCSP response, b'' if the server sent none.
    '''
    verified_chains: Sequence[Sequence[AnyCert]]
    ocsp_response: bytes = b''


async def verify(conn_state: ConnectionState, deadline: Optional[float] = None,
                 *, http_client: Optional[httpx.AsyncClient] = None,
                 codec=default_codec,
                 disable_endpoint_checking: bool = False):
    '''
    Check the server certificate with the staple or with OCSP responders.

    deadline - when to give up asking responders, in event loop time.
    disable_endpoint_checking - trust only the staple, never ask responders.
    '''
    logger = logging.getLogger(__name__)
    try:
        if len(conn_state.verified_chains) == 0:
            raise ConfigError('no verified certificate chains reported '
                              'after TLS handshake')
        cert_chain = conn_state.verified_chains[0]
        if len(cert_chain) == 0:
            raise ConfigError('verified chain contained no certificates')

        cfg = new_config(cert_chain)
        res = parse_staple(cfg, conn_state.ocsp_response, codec)
        if res is None and not disable_endpoint_checking:
            res = await contact_responders(cfg, deadline, http_client, codec)
        if res is None:
            logger.debug('Certificate %X status is unknown. Accepted',
                         cfg.server_cert.serial_number)
            return None

        verify_response(cfg, res)
    except (ConfigError, StapleError, NetworkFatalError,
            ResponseInvalidError) as err:
        raise OCSPError(err) from err
    return None
