"""Single-shot HTTP GET for manifest documents and their signatures."""

from collections.abc import Collection
from dataclasses import dataclass

import httpx

from errors import EmptyResponseError
from logging_setup import get_logger

logger = get_logger()


@dataclass(frozen=True)
class FetchSuccess:
    url: str
    status: int
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass(frozen=True)
class FetchFailure:
    url: str
    cause: Exception
    status: int | None = None


FetchOutcome = FetchSuccess | FetchFailure


def fetch(
    url: str,
    client: httpx.Client | None = None,
    timeout: float = 30.0,
) -> FetchOutcome:
    """Perform one GET request against url.

    Any HTTP response, whatever its status, is a FetchSuccess; only transport
    errors (timeouts, refused connections, protocol errors) become a
    FetchFailure. Callers classify the status with is_gone() and require_ok().
    """
    logger.debug("GET %s", url)
    try:
        if client is None:
            response = httpx.get(url, timeout=timeout)
        else:
            response = client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("GET %s failed: %s", url, e)
        return FetchFailure(url=url, cause=e)

    logger.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(response.content))
    return FetchSuccess(url=url, status=response.status_code, body=response.content)


def is_gone(status: int, gone_codes: Collection[int]) -> bool:
    """Whether status says the resource was intentionally removed."""
    return status in gone_codes


def require_ok(result: FetchOutcome) -> FetchOutcome:
    """Turn a non-2xx or empty response into a FetchFailure."""
    if isinstance(result, FetchFailure):
        return result

    if not 200 <= result.status < 300:
        request = httpx.Request("GET", result.url)
        response = httpx.Response(result.status, request=request)
        cause = httpx.HTTPStatusError(
            f"Unexpected status {result.status} for {result.url}",
            request=request,
            response=response,
        )
        return FetchFailure(url=result.url, cause=cause, status=result.status)

    if not result.body:
        return FetchFailure(
            url=result.url,
            cause=EmptyResponseError(f"Response body is empty for {result.url}"),
            status=result.status,
        )

    return result
