"""vpn-catalog - Fetch and verify the signed server and organization lists."""

import argparse
import sys
from pathlib import Path

from catalog import OrganizationList, ServerList, translated
from config import Config
from errors import ConfigError, InvalidPublicKeyError
from logging_setup import get_logger, setup_logging
from manifest import (
    MalformedCatalog,
    ManifestDeleted,
    ManifestKind,
    ManifestService,
    Ready,
    SignatureInvalid,
    TransportFailure,
)

KINDS = {
    "servers": ManifestKind.SERVER_LIST,
    "organizations": ManifestKind.ORGANIZATION_LIST,
}

EXIT_CODES = {
    Ready: 0,
    TransportFailure: 1,
    SignatureInvalid: 2,
    MalformedCatalog: 3,
    ManifestDeleted: 4,
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch a signed catalog from the manifest authority and verify it",
    )
    parser.add_argument(
        "kind",
        choices=sorted(KINDS),
        help="Which catalog to fetch",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: config.toml)",
    )
    parser.add_argument(
        "-b", "--base-url",
        type=str,
        default=None,
        help="Override manifest authority base URL from config",
    )
    parser.add_argument(
        "-s", "--signature-suffix",
        type=str,
        default=None,
        help="Override signature URL suffix from config",
    )
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds",
    )

    # Logging verbosity (mutually exclusive)
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (only warnings and errors)",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs to file (always DEBUG level)",
    )

    return parser.parse_args()


def report_catalog(catalog: ServerList | OrganizationList) -> None:
    logger = get_logger()

    if isinstance(catalog, ServerList):
        logger.info("Found %d servers (version %s)", len(catalog.servers), catalog.version)
        for server in catalog.servers:
            logger.debug(
                "  %-16s %s %s",
                server.server_type,
                server.base_url,
                translated(server.display_name),
            )
    else:
        logger.info(
            "Found %d organizations (version %s)",
            len(catalog.organizations),
            catalog.version,
        )
        for organization in catalog.organizations:
            logger.debug("  %s %s", organization.org_id, translated(organization.display_name))


def main() -> int:
    args = parse_args()

    # Setup logging first
    verbosity = 1 if args.verbose else (-1 if args.quiet else 0)
    setup_logging(verbosity=verbosity, log_file=args.log_file)
    logger = get_logger()

    logger.debug("Loading configuration...")
    try:
        config = Config.load(
            config_path=args.config,
            base_url_override=args.base_url,
            signature_suffix_override=args.signature_suffix,
            timeout_override=args.timeout,
        )
        service = ManifestService(config)
    except (ConfigError, InvalidPublicKeyError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    kind = KINDS[args.kind]
    logger.info("Manifest authority: %s", config.base_url)
    logger.debug("Signature suffix: %s", config.signature_suffix)

    with service:
        outcome = service.fetch(kind)

    if isinstance(outcome, Ready):
        report_catalog(outcome.catalog)
    elif isinstance(outcome, ManifestDeleted):
        logger.warning("%s has been removed by the authority", kind.file_name)
    elif isinstance(outcome, TransportFailure):
        logger.error("Error fetching %s: %s", kind.file_name, outcome.cause)
    elif isinstance(outcome, SignatureInvalid):
        logger.error("Signature validation failed for %s!", kind.file_name)
    else:
        logger.error("Verified %s is malformed: %s", kind.file_name, outcome.reason)

    return EXIT_CODES[type(outcome)]


if __name__ == "__main__":
    sys.exit(main())
