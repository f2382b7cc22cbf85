'''
Check if a server certificate was revoked, with OCSP.
A server is a URL-like string: [proto://]server[:port]
If no proto specified, HTTPS is assumed.
'''

import argparse
import logging
import sys

from check_ocsp_lib.check_ocsp import check_ocsp
from check_ocsp_lib.logging_black_white_lists import (
        HTTP_LOGGERS, Blacklist, add_filter_to_all_handlers)


def main(argv=None):
    '''Main function'''
    parser = argparse.ArgumentParser(prog='check-ocsp')
    parser.add_argument('url', nargs=1, help='protocol://hostname.domain:port')
    parser.add_argument('-d', '--debug', action='store_true',
                        help='Print much info for debugging')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Print only error messages')
    parser.add_argument('-t', '--timeout', type=float, default=None,
        help='Seconds to wait for OCSP responders. Default and maximum: 5.')
    parser.add_argument('-4', '--only-ipv4', action='store_true',
                        help='Use only IPv4 addresses for checks')
    parser.add_argument('-6', '--only-ipv6', action='store_true',
                        help='Use only IPv6 addresses for checks')
    parser.add_argument('-1', '--only-one', action='store_true',
                        help='Use only first IP for checking')
    parser.add_argument('--no-responders', action='store_true',
                        help='Trust only stapled response, '
                             'do not ask OCSP responders')
    args = parser.parse_args(argv)

    flags = dict()
    flags['quiet'] = args.quiet
    flags['timeout'] = args.timeout
    flags['only_ipv4'] = args.only_ipv4
    flags['only_ipv6'] = args.only_ipv6
    flags['only_one'] = args.only_one
    flags['no_responders'] = args.no_responders

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
        add_filter_to_all_handlers(Blacklist(*HTTP_LOGGERS))
    else:
        logging.basicConfig(format='%(message)s', level=logging.INFO)

    logging.debug('url=%s', args.url[0])

    error, message = check_ocsp(args.url[0], **flags)
    print(message, end='')
    if error:
        print(error, end='', file=sys.stderr)
        sys.exit(1)
