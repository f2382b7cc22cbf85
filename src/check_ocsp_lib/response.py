'''Final checks of a conclusive OCSP response.'''

import logging
from datetime import datetime

from pytz import UTC

from check_ocsp_lib.codec import CertStatus, OCSPResponse
from check_ocsp_lib.config import Config
from check_ocsp_lib.errors import ResponseInvalidError


def verify_response(cfg: Config, res: OCSPResponse):
    '''
    Check the response is in its time window and the certificate isn't
    revoked. Raise ResponseInvalidError if it's not so.
    '''
    logger = logging.getLogger(__name__)
    now_aware = datetime.now(tz=UTC)

    if res.this_update > now_aware:
        raise ResponseInvalidError(
                f'reported thisUpdate time {res.this_update} is after '
                f'current time {now_aware}')
    if res.next_update is not None and res.next_update < now_aware:
        raise ResponseInvalidError(
                f'reported nextUpdate time {res.next_update} is before '
                f'current time {now_aware}')
    if res.status == CertStatus.REVOKED:
        raise ResponseInvalidError('certificate is revoked')

    logger.debug('Certificate %X is good',
                 cfg.server_cert.serial_number)
