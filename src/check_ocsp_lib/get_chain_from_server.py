'''
Make a TLS handshake with a server and take what OCSP checks need:
the verified certificate chain and the stapled OCSP response.
For some protocols it sends extra commands before the handshake.
An example: EHLO/STARTTLS commands for SMTP.
'''

import socket
from typing import Optional

import certifi
from OpenSSL import SSL
import timeout_decorator

from check_ocsp_lib.verify import ConnectionState


TIMEOUT = 5
NULL = ''

# Commands to send before TLS starts. Server answers are ignored.
STARTTLS_COMMANDS = {
    'smtp': (b'EHLO gmail.com\r\n', b'STARTTLS\r\n'),
    'imap': (b'. STARTTLS\r\n',),
    'ftp': (b'AUTH TLS\r\n',),
    'pop3': (b'STLS\r\n',),
}

@timeout_decorator.timeout(TIMEOUT)
def do_handshake_with_timeout(conn: SSL.Connection):
    '''
    A stock do_handshake() can't make stop on timeout. It hangs forever.
    This function using timeout_decorator to change this behaviour.
    '''
    conn.do_handshake()

def make_context(staple: dict) -> SSL.Context:
    '''
    Client context which verifies the peer with certifi CA bundle and
    asks for OCSP stapling. A staple is saved in staple['data'].
    '''
    def ocsp_callback(conn: SSL.Connection, ocsp_data: bytes, data) -> bool:
        # Checked later by verify(). Don't break the handshake here.
        staple['data'] = ocsp_data
        return True

    context = SSL.Context(SSL.TLS_CLIENT_METHOD)
    context.set_verify(SSL.VERIFY_PEER)
    context.load_verify_locations(certifi.where())
    context.set_ocsp_client_callback(ocsp_callback)
    return context

def get_state_from_server(hostname: str, addr: str, port: int, proto: str
        ) -> tuple[str, Optional[ConnectionState]]:
    '''
    Get the verified chain and the staple from a server. It respects timeouts.
    Get:
    hostname - for SNI we need a full server name (FQDN).
    addr - IP address of server as string.
    port - a port as integer.
    proto - protocol name (https, smtp etc.). It's need to know if we need
            to send extra commands or not.
    Return: tuple(error, ConnectionState or None)
    '''
    staple: dict = {'data': b''}
    context = make_context(staple)

    # open plain connection
    s_type = socket.AF_INET
    if ':' in addr:
        s_type = socket.AF_INET6
    sock = socket.socket(s_type)
    sock.settimeout(TIMEOUT)

    conn = SSL.Connection(context=context, socket=sock)
    try:
        conn.connect((addr, port))
    except OSError as msg:
        conn.close()
        return (f'{addr}: Connection error: {str(msg)}', None)

    try:
        if proto in STARTTLS_COMMANDS:
            sock.recv(500)
            for command in STARTTLS_COMMANDS[proto]:
                sock.send(command)
                sock.recv(500)
    except OSError as err:
        conn.close()
        return (f'send/recv error: {str(err)}', None)

    try:
        conn.setblocking(1)
        conn.set_tlsext_host_name(hostname.encode())
        conn.request_ocsp()
        do_handshake_with_timeout(conn)
    except (SSL.Error, timeout_decorator.TimeoutError) as err:
        conn.close()
        return (f'{addr}: SSL do_handshake error: {str(err)}', None)

    chain = conn.get_verified_chain()
    conn.close()
    if not chain:
        return (f'{addr}: Get verified certificate chain error', None)

    return (NULL, ConnectionState(verified_chains=[chain],
                                  ocsp_response=staple['data']))
