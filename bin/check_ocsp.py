#!/usr/bin/env python3

'''
Check if a server certificate was revoked, with OCSP.
The same as the check-ocsp console script.
'''

from check_ocsp_lib.cli import main


if __name__ == '__main__':
    main()
