'''Exceptions raised while checking a certificate with OCSP.'''


class OCSPError(Exception):
    '''
    The only exception verify() raises. The real reason is kept in
    `wrapped` (and in __cause__).
    '''
    def __init__(self, wrapped: Exception):
        super().__init__(wrapped)
        self.wrapped = wrapped

    def __str__(self) -> str:
        return f'OCSP verification failed: {self.wrapped}'


class ConfigError(Exception):
    '''No usable certificate chain.'''


class StapleError(Exception):
    '''Stapled response is missing (Must-Staple) or broken.'''


class NetworkFatalError(Exception):
    '''The caller's deadline expired while responders were asked.'''


class ResponseInvalidError(Exception):
    '''OCSP response is out of its time window or the certificate is revoked.'''


class CodecError(ValueError):
    '''OCSP response can't be decoded or doesn't cover the certificate.'''
