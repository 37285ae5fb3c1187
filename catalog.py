"""Catalog parsing for verified server and organization manifests.

The manifest structures are::

    {
        "v": 1700000000,
        "server_list": [
            {
                "server_type": "institute_access" | "secure_internet",
                "base_url": "https://vpn.example.org/",
                "display_name": "Example" | {"en-US": "Example", ...},
                "country_code": "NL",            # secure_internet only
                "support_contact": ["mailto:..."],
                "public_key_list": ["..."],
            },
            ...
        ]
    }

    {
        "v": 1700000000,
        "organization_list": [
            {
                "org_id": "https://idp.example.org",
                "display_name": "Example" | {"en-US": "Example", ...},
                "secure_internet_home": "https://nl.example.org/",
                "keyword_list": "example" | {"en-US": "example", ...},
            },
            ...
        ]
    }

Only the pipeline in manifest.py calls these parsers, and only with documents
whose signature has been verified.
"""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from errors import CatalogParseError


@dataclass(frozen=True)
class Server:
    base_url: str
    server_type: str
    display_name: Mapping[str, str]
    country_code: str | None = None
    support_contact: tuple[str, ...] = ()
    public_key_list: tuple[str, ...] = ()


@dataclass(frozen=True)
class ServerList:
    version: int | None
    servers: tuple[Server, ...]


@dataclass(frozen=True)
class Organization:
    org_id: str
    display_name: Mapping[str, str]
    secure_internet_home: str | None = None
    keyword_list: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class OrganizationList:
    version: int | None
    organizations: tuple[Organization, ...]


Catalog = ServerList | OrganizationList


def translated(value: Mapping[str, str], language: str = "en-US") -> str:
    """Pick the best text for language from a translated mapping.

    Falls back to the language without region, then English, then any
    available value.
    """
    if language in value:
        return value[language]
    prefix = language.split("-")[0]
    for key, text in value.items():
        if key.split("-")[0] == prefix:
            return text
    for key in ("en-US", "en", ""):
        if key in value:
            return value[key]
    return next(iter(value.values()), "")


def _load_root(text: str, list_key: str) -> tuple[int | None, list]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogParseError(f"Manifest is not valid JSON: {e}")
    except (ValueError, RecursionError) as e:
        # Oversized integer literals and excessive nesting
        raise CatalogParseError(f"Manifest JSON cannot be decoded: {e}")

    if not isinstance(document, dict):
        raise CatalogParseError("Manifest root must be a JSON object")
    if list_key not in document:
        raise CatalogParseError(f"Manifest is missing '{list_key}'")

    entries = document[list_key]
    if not isinstance(entries, list):
        raise CatalogParseError(f"'{list_key}' must be a list")

    version = document.get("v")
    if version is not None and (not isinstance(version, int) or isinstance(version, bool)):
        raise CatalogParseError(f"'v' must be an integer; got {version!r}")

    return version, entries


def _require(entry: Any, key: str, index: int) -> Any:
    if not isinstance(entry, dict):
        raise CatalogParseError(f"Entry {index} must be a JSON object")
    if key not in entry:
        raise CatalogParseError(f"Entry {index} is missing '{key}'")
    return entry[key]


def _string(value: Any, key: str, index: int) -> str:
    if not isinstance(value, str):
        raise CatalogParseError(f"Entry {index}: '{key}' must be a string")
    return value


def _translatable(value: Any, key: str, index: int) -> Mapping[str, str]:
    if isinstance(value, str):
        return MappingProxyType({"": value})
    if isinstance(value, dict) and all(isinstance(v, str) for v in value.values()):
        return MappingProxyType(dict(value))
    raise CatalogParseError(f"Entry {index}: '{key}' must be a string or a translation map")


def _strings(value: Any, key: str, index: int) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CatalogParseError(f"Entry {index}: '{key}' must be a list of strings")
    return tuple(value)


def parse_server_list(text: str) -> ServerList:
    """Parse a server_list.json document.

    Raises:
        CatalogParseError: If the document does not have the expected structure.
    """
    version, entries = _load_root(text, "server_list")

    servers = []
    for index, entry in enumerate(entries):
        base_url = _string(_require(entry, "base_url", index), "base_url", index)
        server_type = _string(_require(entry, "server_type", index), "server_type", index)
        display_name = _translatable(entry.get("display_name", base_url), "display_name", index)
        country_code = entry.get("country_code")
        if country_code is not None:
            country_code = _string(country_code, "country_code", index)
        servers.append(
            Server(
                base_url=base_url,
                server_type=server_type,
                display_name=display_name,
                country_code=country_code,
                support_contact=_strings(entry.get("support_contact", []), "support_contact", index),
                public_key_list=_strings(entry.get("public_key_list", []), "public_key_list", index),
            )
        )

    return ServerList(version=version, servers=tuple(servers))


def parse_organization_list(text: str) -> OrganizationList:
    """Parse an organization_list.json document.

    Raises:
        CatalogParseError: If the document does not have the expected structure.
    """
    version, entries = _load_root(text, "organization_list")

    organizations = []
    for index, entry in enumerate(entries):
        org_id = _string(_require(entry, "org_id", index), "org_id", index)
        display_name = _translatable(_require(entry, "display_name", index), "display_name", index)
        home = entry.get("secure_internet_home")
        if home is not None:
            home = _string(home, "secure_internet_home", index)
        keywords = entry.get("keyword_list")
        organizations.append(
            Organization(
                org_id=org_id,
                display_name=display_name,
                secure_internet_home=home,
                keyword_list=(
                    _translatable(keywords, "keyword_list", index)
                    if keywords is not None
                    else MappingProxyType({})
                ),
            )
        )

    return OrganizationList(version=version, organizations=tuple(organizations))
