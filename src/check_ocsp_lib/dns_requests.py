'''Resolve server names before connecting to them.'''

import logging

import dns.exception
import dns.name
import dns.resolver


# timeout for dns queries
TIMEOUT = 5


def check_fqdn(fqdn: str) -> bool:
    '''
    Check FQDN with dnspython function. It prevent us from an exceptions in
    get_dns_request() because of bad FQDN.
    '''
    try:
        dns.name.from_text(fqdn)
    except dns.exception.DNSException:
        return False
    return True

def get_dns_request(dname: str, rtype: str) -> list:
    '''
    Make arbitrary DNS request.
    Return: list of RR records, empty if nothing found.
    '''
    logger = logging.getLogger(__name__)
    try:
        answers = dns.resolver.resolve(dname, rtype, lifetime=TIMEOUT)
    except dns.resolver.NXDOMAIN:
        logger.debug('No DNS record %s found for %s', rtype, dname)
        return []
    except (dns.resolver.NoAnswer, dns.resolver.NoNameservers,
            dns.exception.Timeout) as err:
        logger.debug('DNS %s request for %s failed: %s', rtype, dname, err)
        return []
    return list(answers)

def get_all_dns(fqdn: str, only_ipv4: bool = False, only_ipv6: bool = False,
        only_first: bool = False) -> list[str]:
    '''
    Get all addresses for this FQDN, IPv6 first.
    Return: list of IP addresses as strings or an empty list.
    '''
    # fqdn must be checked with check_fqdn() before
    dname = dns.name.from_text(fqdn)

    rdata: list = []
    if not only_ipv4:
        rdata += get_dns_request(dname, 'AAAA')
    if not only_ipv6:
        rdata += get_dns_request(dname, 'A')

    addresses = [rr.to_text() for rr in rdata]
    if only_first:
        return addresses[:1]
    return addresses
