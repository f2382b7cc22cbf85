'''Check server URLs given by user before connecting to them.'''

import re
import socket
from typing import Tuple
from urllib.parse import urlparse


DEFAULT_SCHEME = 'https'

# Some shortenings for return values.
NoResult = ('', '', 0)
Null = ''

FQDN_LABEL = re.compile(r'(?!-)[A-Z\d-]{1,63}(?<!-)$', re.IGNORECASE)


def is_valid_fqdn(fqdn: str) -> bool:
    '''Is DNS name (FQDN) correct? At least two labels are required.'''
    if not fqdn or len(fqdn) > 255 or '.' not in fqdn:
        return False
    return all(FQDN_LABEL.match(label) for label in fqdn.split('.'))

def normalize_url(url_str: str) -> str:
    '''Add https:// if user gave us just a host name.'''
    if '://' not in url_str:
        return f'{DEFAULT_SCHEME}://{url_str}'
    return url_str

def parse_and_check_url(url_str: str) -> Tuple[str, Tuple[str, str, int]]:
    '''
    Parse and check server's URL. The port is taken from /etc/services
    if it is not in the URL.

    Return: tuple(error, tuple(protocol, fqdn, port))
    '''
    if '://' not in url_str:
        return (f'URL error: {url_str}\n', NoResult)

    url = urlparse(url_str)
    scheme = str(url.scheme)
    fqdn = str(url.hostname)
    if scheme == '':
        return (f'URL parse error: {url_str}\n', NoResult)
    try:
        port = url.port
    except ValueError:
        return (f'port number error: {url_str}\n', NoResult)
    if port is None:
        try:
            port = socket.getservbyname(scheme, 'tcp')
        except OSError:
            return (f'Unknown protocol: {scheme}\n', NoResult)
    if not 0 < port < 65536:
        return (f'Bad port number: {port}\n', NoResult)
    if not is_valid_fqdn(fqdn):
        return (f'Hostname parse error: {fqdn}\n', NoResult)

    return (Null, (scheme, fqdn, port))
