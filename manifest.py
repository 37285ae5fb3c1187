"""Signed manifest retrieval for vpn-catalog.

A manifest and its detached signature are fetched concurrently. Once both
have arrived the outcome is resolved in this order:

1. document status in the gone set   -> ManifestDeleted
2. either fetch failed               -> TransportFailure
3. signature does not verify         -> SignatureInvalid
4. verified document does not parse  -> MalformedCatalog
5. otherwise                         -> Ready

Outcomes are returned by value. A catalog only ever comes out of step 5.
"""

from collections.abc import Callable, Collection
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial

import httpx

from catalog import Catalog, parse_organization_list, parse_server_list
from config import Config
from errors import CatalogParseError
from fetcher import FetchFailure, FetchOutcome, FetchSuccess, fetch, is_gone, require_ok
from logging_setup import get_logger, get_manifest_logger
from signature import PinnedKey, load_public_key, verify

logger = get_logger()


class ManifestKind(Enum):
    SERVER_LIST = "server_list.json"
    ORGANIZATION_LIST = "organization_list.json"

    @property
    def file_name(self) -> str:
        return self.value

    def parse(self, text: str) -> Catalog:
        if self is ManifestKind.SERVER_LIST:
            return parse_server_list(text)
        return parse_organization_list(text)


@dataclass(frozen=True)
class ManifestRequest:
    kind: ManifestKind
    base_url: str
    signature_suffix: str

    @property
    def manifest_url(self) -> str:
        return f"{self.base_url}{self.kind.file_name}"

    @property
    def signature_url(self) -> str:
        return f"{self.manifest_url}{self.signature_suffix}"


@dataclass(frozen=True)
class Ready:
    kind: ManifestKind
    catalog: Catalog


@dataclass(frozen=True)
class ManifestDeleted:
    kind: ManifestKind
    status: int


@dataclass(frozen=True)
class TransportFailure:
    kind: ManifestKind
    cause: Exception


@dataclass(frozen=True)
class SignatureInvalid:
    kind: ManifestKind


@dataclass(frozen=True)
class MalformedCatalog:
    kind: ManifestKind
    reason: str


Outcome = Ready | ManifestDeleted | TransportFailure | SignatureInvalid | MalformedCatalog

FetchFunc = Callable[[str], FetchOutcome]
VerifyFunc = Callable[[bytes, str, PinnedKey], bool]


def resolve_outcome(
    kind: ManifestKind,
    document: FetchOutcome,
    signature: FetchOutcome,
    public_key: PinnedKey,
    gone_codes: Collection[int],
    verify_func: VerifyFunc = verify,
) -> Outcome:
    """Turn a joined pair of fetch results into exactly one outcome."""
    log = get_manifest_logger(kind.file_name)

    if isinstance(document, FetchSuccess) and is_gone(document.status, gone_codes):
        log.info("Deleted by the authority (HTTP %d)", document.status)
        return ManifestDeleted(kind=kind, status=document.status)

    document = require_ok(document)
    signature = require_ok(signature)
    for result in (document, signature):
        if isinstance(result, FetchFailure):
            log.warning("Fetching %s failed: %s", result.url, result.cause)
            return TransportFailure(kind=kind, cause=result.cause)

    try:
        valid = verify_func(document.body, signature.text, public_key)
    except Exception as e:
        log.warning("Unable to verify signature", exc_info=e)
        valid = False
    if not valid:
        log.warning("Signature validation failed")
        return SignatureInvalid(kind=kind)

    try:
        catalog = kind.parse(document.text)
    except (CatalogParseError, UnicodeDecodeError) as e:
        log.warning("Verified document could not be parsed: %s", e)
        return MalformedCatalog(kind=kind, reason=str(e))

    log.debug("Verified and parsed")
    return Ready(kind=kind, catalog=catalog)


def run_pipeline(
    request: ManifestRequest,
    public_key: PinnedKey,
    gone_codes: Collection[int],
    fetch_func: FetchFunc = fetch,
    verify_func: VerifyFunc = verify,
    executor: ThreadPoolExecutor | None = None,
) -> Outcome:
    """Fetch a manifest and its signature concurrently, then verify and parse.

    Both fetches always run to completion before anything is resolved.

    Args:
        request: Which manifest to fetch and where from
        public_key: Pinned key every signature must verify against
        gone_codes: HTTP statuses meaning the manifest was removed
        fetch_func: Single GET, must return a FetchOutcome and not raise
        verify_func: Signature check, see signature.verify()
        executor: Pool to run the two fetches on; a private one when None

    Returns:
        The outcome of this request
    """
    pool = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="manifest-io")
    try:
        document_future = pool.submit(fetch_func, request.manifest_url)
        signature_future = pool.submit(fetch_func, request.signature_url)
        document = document_future.result()
        signature = signature_future.result()
    finally:
        if executor is None:
            pool.shutdown(wait=True)

    return resolve_outcome(
        request.kind,
        document,
        signature,
        public_key,
        gone_codes,
        verify_func=verify_func,
    )


class ManifestService:
    """Fetches verified catalogs from the configured manifest authority.

    Pipelines run on a background pool. Results of submit() are handed to
    the caller's callback on one dedicated callback thread, once per request.
    """

    def __init__(
        self,
        config: Config,
        public_key: PinnedKey | None = None,
        client: httpx.Client | None = None,
    ):
        self.config = config
        self.public_key = public_key or load_public_key(config.public_key)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout)
        self._io = ThreadPoolExecutor(max_workers=4, thread_name_prefix="manifest-io")
        self._background = ThreadPoolExecutor(max_workers=2, thread_name_prefix="manifest-pipeline")
        self._callbacks = ThreadPoolExecutor(max_workers=1, thread_name_prefix="manifest-callback")

    def request_for(self, kind: ManifestKind) -> ManifestRequest:
        return ManifestRequest(
            kind=kind,
            base_url=self.config.base_url,
            signature_suffix=self.config.signature_suffix,
        )

    def fetch(self, kind: ManifestKind) -> Outcome:
        """Run the pipeline for kind on the calling thread and return its outcome."""
        return run_pipeline(
            self.request_for(kind),
            self.public_key,
            self.config.gone_status_codes,
            fetch_func=partial(fetch, client=self._client),
            executor=self._io,
        )

    def fetch_server_list(self) -> Outcome:
        return self.fetch(ManifestKind.SERVER_LIST)

    def fetch_organization_list(self) -> Outcome:
        return self.fetch(ManifestKind.ORGANIZATION_LIST)

    def submit(self, kind: ManifestKind, on_complete: Callable[[Outcome], None]) -> Future:
        """Run the pipeline in the background and report to on_complete.

        The returned future resolves to the outcome. It cannot abort the
        network requests already in flight; a caller that no longer wants
        the result should ignore the callback. A pipeline that crashes is
        reported to on_complete as a TransportFailure carrying the exception.
        """
        future = self._background.submit(self.fetch, kind)

        def deliver(done: Future) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.error("Pipeline for %s crashed", kind.file_name, exc_info=error)
                outcome = TransportFailure(kind=kind, cause=error)
            else:
                outcome = done.result()
            self._callbacks.submit(on_complete, outcome)

        future.add_done_callback(deliver)
        return future

    def close(self) -> None:
        self._background.shutdown(wait=True)
        self._io.shutdown(wait=True)
        self._callbacks.shutdown(wait=True)
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ManifestService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
