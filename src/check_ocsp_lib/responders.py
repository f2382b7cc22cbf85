'''
Ask OCSP responders listed in the server certificate.

All responders are asked at once. The first conclusive answer (GOOD or
REVOKED) wins and the rest of requests are cancelled. If nobody answers
conclusively we have no opinion about the certificate and return None.
'''

import asyncio
import enum
import logging
from typing import NamedTuple, Optional

import httpx

from check_ocsp_lib import codec as default_codec
from check_ocsp_lib.codec import CertStatus, OCSPResponse, request_fingerprint
from check_ocsp_lib.config import Config
from check_ocsp_lib.errors import CodecError, NetworkFatalError


# seconds, an upper limit for the whole query
DEFAULT_REQUEST_TIMEOUT = 5
OCSP_REQUEST_HEADERS = {'Content-Type': 'application/ocsp-request',
                        'Accept': 'application/ocsp-response'}


class Outcome(enum.Enum):
    CONTINUE = 'continue'
    FATAL = 'fatal'
    CONCLUSIVE = 'conclusive'


class Result(NamedTuple):
    outcome: Outcome
    url: str
    cause: Optional[BaseException] = None


async def ask_responder(client: httpx.AsyncClient, url: str, request: bytes,
                        cfg: Config, deadline: float,
                        caller_deadline_used: bool,
                        results: asyncio.Queue,
                        codec=default_codec) -> Result:
    '''
    Send one request to one responder and classify what happened.
    A conclusive response is put to results before CONCLUSIVE is returned.

    Only expiry of the caller's own deadline is FATAL. Everything else
    (refused connection, DNS errors, our internal timeout, bad answers)
    means "ask somebody else".
    '''
    logger = logging.getLogger(__name__ + '.ask_responder')
    try:
        http_request = client.build_request('POST', url, content=request,
                                            headers=OCSP_REQUEST_HEADERS)
    except httpx.InvalidURL as err:
        logger.debug('%s: bad responder URL: %s', url, err)
        return Result(Outcome.CONTINUE, url)

    try:
        async with asyncio.timeout_at(deadline):
            http_response = await client.send(http_request, stream=True)
    except TimeoutError as err:
        if caller_deadline_used:
            return Result(Outcome.FATAL, url, err)
        logger.debug('%s: no answer in %s seconds', url,
                     DEFAULT_REQUEST_TIMEOUT)
        return Result(Outcome.CONTINUE, url)
    except httpx.HTTPError as err:
        logger.debug('%s: request error: %s', url, err)
        return Result(Outcome.CONTINUE, url)

    try:
        if http_response.status_code != 200:
            logger.debug('%s: HTTP status %d', url, http_response.status_code)
            return Result(Outcome.CONTINUE, url)
        try:
            async with asyncio.timeout_at(deadline):
                body = await http_response.aread()
        except (TimeoutError, httpx.HTTPError) as err:
            logger.debug('%s: read error: %r', url, err)
            return Result(Outcome.CONTINUE, url)
    finally:
        await http_response.aclose()

    try:
        response = codec.parse_response_for_cert(body, cfg.server_cert,
                                                 cfg.issuer)
    except CodecError as err:
        logger.debug('%s: %s', url, err)
        return Result(Outcome.CONTINUE, url)
    if response.status == CertStatus.UNKNOWN:
        logger.debug('%s: certificate status is unknown', url)
        return Result(Outcome.CONTINUE, url)

    # Never blocks: the queue has room for every responder
    results.put_nowait(response)
    return Result(Outcome.CONCLUSIVE, url)

async def _race(client: httpx.AsyncClient, cfg: Config, request: bytes,
                deadline: float, caller_deadline_used: bool,
                codec) -> Optional[OCSPResponse]:
    logger = logging.getLogger(__name__ + '.contact_responders')
    results: asyncio.Queue = asyncio.Queue(maxsize=len(cfg.responder_urls))
    tasks = [asyncio.create_task(
                ask_responder(client, url, request, cfg, deadline,
                              caller_deadline_used, results, codec))
             for url in cfg.responder_urls]
    try:
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            if result.outcome is Outcome.FATAL:
                raise NetworkFatalError(
                        f'{result.url}: deadline exceeded before any OCSP '
                        'responder answered') from result.cause
            if result.outcome is Outcome.CONCLUSIVE:
                logger.debug('%s answered first', result.url)
                break
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if results.empty():
        return None
    return results.get_nowait()

async def contact_responders(cfg: Config, deadline: Optional[float] = None,
                             http_client: Optional[httpx.AsyncClient] = None,
                             codec=default_codec) -> Optional[OCSPResponse]:
    '''
    Get the first conclusive response of the certificate's responders.

    deadline - the caller's deadline in event loop time
               (as for asyncio.timeout_at()), None if there is no one.
    http_client - a client to use. A new one is made if it's None.

    Return: OCSPResponse with GOOD or REVOKED status or None if there is
            no responders or nobody answered conclusively.
    Raise NetworkFatalError if the caller's deadline expired first.
    '''
    logger = logging.getLogger(__name__ + '.contact_responders')
    if not cfg.responder_urls:
        logger.debug('No OCSP responders in the certificate')
        return None

    try:
        request = codec.create_request(cfg.server_cert, cfg.issuer)
    except (ValueError, TypeError) as err:
        # Can't ask, so don't know. It's not a reason to reject the cert.
        logger.debug('Can\'t build OCSP request: %s', err)
        return None

    # Use our own deadline unless the caller wants an answer sooner.
    # Remember whose deadline is used: it decides if a timeout is an error.
    loop = asyncio.get_running_loop()
    cutoff = loop.time() + DEFAULT_REQUEST_TIMEOUT
    caller_deadline_used = deadline is not None and deadline <= cutoff
    if not caller_deadline_used:
        deadline = cutoff

    logger.debug('Request %s to %d responder[s], caller deadline used: %s',
                 request_fingerprint(request), len(cfg.responder_urls),
                 caller_deadline_used)

    if http_client is not None:
        return await _race(http_client, cfg, request, deadline,
                           caller_deadline_used, codec)
    async with httpx.AsyncClient(timeout=None) as client:
        return await _race(client, cfg, request, deadline,
                           caller_deadline_used, codec)
