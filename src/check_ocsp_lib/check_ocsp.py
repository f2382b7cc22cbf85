'''Check OCSP status of a server's certificate by its URL.'''

import asyncio
import logging
from typing import Optional, Tuple

from check_ocsp_lib.check_validity import normalize_url, parse_and_check_url
from check_ocsp_lib.dns_requests import check_fqdn, get_all_dns
from check_ocsp_lib.errors import OCSPError
from check_ocsp_lib.get_chain_from_server import get_state_from_server
from check_ocsp_lib.verify import ConnectionState, verify


NULL = ''


async def verify_in_time(conn_state: ConnectionState,
                         timeout: Optional[float] = None, **kwargs):
    '''verify() with a deadline `timeout` seconds from now.'''
    deadline = None
    if timeout is not None:
        deadline = asyncio.get_running_loop().time() + timeout
    await verify(conn_state, deadline, **kwargs)

# Return (error, result)
def check_ocsp(url_str: str, **flags) -> Tuple[str, str]:
    '''
    Make OCSP checks for every address of the server.

    Supported flags:
        quiet - don't output anything except errors.
        only_ipv4 - use only IPv4 addresses for checking.
        only_ipv6 - use only IPv6 addresses for checking.
        only_one - use only first met IP after resolve for checking.
        timeout - seconds to wait for OCSP responders. 5 at most.
        no_responders - trust only stapled response, don't ask responders.

    Return: tuple(error, result)
    '''
    logger = logging.getLogger(__name__)
    quiet = flags.get('quiet', False)

    error, (proto, fqdn, port) = parse_and_check_url(normalize_url(url_str))
    if error:
        return (error, NULL)
    if not check_fqdn(fqdn):
        return (f'Host name is invalid: {fqdn}\n', NULL)
    logger.debug('%s %s %s', proto, fqdn, port)

    addresses = get_all_dns(fqdn, flags.get('only_ipv4', False),
                            flags.get('only_ipv6', False),
                            flags.get('only_one', False))
    if len(addresses) == 0:
        return (f'No address records found for {fqdn}\n', NULL)

    error_msg: str = ''
    message: str = ''
    if not quiet:
        message += f'{len(addresses)} DNS address[es] found for {fqdn}:\n'

    checked: set = set()
    for addr in addresses:
        error, state = get_state_from_server(fqdn, addr, port, proto)
        if error or state is None:
            error_msg += f'Error: {error}\n'
            continue

        cert = state.verified_chains[0][0]
        serial = cert.get_serial_number()
        # Do not check the same certificate again
        if serial in checked:
            if not quiet:
                message += f'{addr}: Certificate is the same\n'
            continue
        checked.add(serial)

        if not quiet:
            message += f'{addr}: Cert ID {serial:X}, '
            if state.ocsp_response:
                message += f'stapled response {len(state.ocsp_response)} bytes\n'
            else:
                message += 'no stapled response\n'

        try:
            asyncio.run(verify_in_time(
                    state, flags.get('timeout'),
                    disable_endpoint_checking=flags.get('no_responders',
                                                        False)))
        except OCSPError as err:
            logger.info('%s (%s): %s', fqdn, addr, err)
            error_msg += f'{addr}: {err}\n'
            continue
        if not quiet:
            message += f'{addr}: Certificate is not revoked\n'

    return (error_msg, message)
