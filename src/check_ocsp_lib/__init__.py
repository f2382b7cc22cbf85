'''
A library to check if a TLS server certificate was revoked, with OCSP.
It validates stapled responses, asks the certificate's OCSP responders
concurrently if there is no staple and checks the answer it got.
'''
__version__ = '1.0.0'

# Check python version. We need 3.11+ for asyncio.timeout_at()
import sys

if sys.version_info < (3, 11):
    raise ImportError('This library requires Python 3.11+')
