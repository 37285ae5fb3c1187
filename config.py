"""Configuration loading and validation for vpn-catalog."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from errors import ConfigError


DEFAULT_CONFIG_PATH = Path("config.toml")

# Discovery signing key of the manifest authority, minisign encoded.
PINNED_PUBLIC_KEY = "RWRtBSX1alxyGX+Xn3LuZnWUT0w//B6EmTJvgaAxBMYzlQeI+jdrO6KF"

DEFAULTS = {
    "base_url": "https://disco.eduvpn.org/v2/",
    "signature_suffix": ".minisig",
    "public_key": PINNED_PUBLIC_KEY,
    "gone_status_codes": [404, 410],
    "timeout": 30.0,
}


@dataclass
class Config:
    base_url: str
    signature_suffix: str
    public_key: str
    gone_status_codes: frozenset[int] = field(default_factory=lambda: frozenset({404, 410}))
    timeout: float = 30.0

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        base_url_override: str | None = None,
        signature_suffix_override: str | None = None,
        timeout_override: float | None = None,
    ) -> "Config":
        """Load configuration from TOML file with defaults."""
        config_data = dict(DEFAULTS)

        path = config_path or DEFAULT_CONFIG_PATH
        if path.exists():
            with open(path, "rb") as f:
                try:
                    file_config = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError(f"{path} is not valid TOML: {e}")
                config_data.update(file_config)

        if base_url_override:
            config_data["base_url"] = base_url_override
        if signature_suffix_override:
            config_data["signature_suffix"] = signature_suffix_override
        if timeout_override is not None:
            config_data["timeout"] = timeout_override

        for key in ("base_url", "signature_suffix", "public_key"):
            if not isinstance(config_data[key], str):
                raise ConfigError(f"{key} must be a string; got {config_data[key]!r}")

        base_url = config_data["base_url"].strip()
        if not base_url:
            raise ConfigError("base_url must not be empty")
        if not base_url.endswith("/"):
            base_url += "/"

        codes = config_data["gone_status_codes"]
        if not isinstance(codes, list) or not all(
            isinstance(code, int) and not isinstance(code, bool) for code in codes
        ):
            raise ConfigError(f"gone_status_codes must be a list of integers; got {codes!r}")

        try:
            timeout = float(config_data["timeout"])
        except (TypeError, ValueError):
            raise ConfigError(f"timeout must be a number; got {config_data['timeout']!r}")

        return cls(
            base_url=base_url,
            signature_suffix=config_data["signature_suffix"],
            public_key=config_data["public_key"],
            gone_status_codes=frozenset(codes),
            timeout=timeout,
        )
