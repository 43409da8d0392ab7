from __future__ import annotations

import logging
import pathlib as p
import typing as t

import pydantic as pydt
import yaml

from mutumwa.exceptions import ConfigError
from mutumwa.types import BaseModel
from mutumwa.types import PathLikes

logger = logging.getLogger("mutumwa.config")


class Domain(BaseModel):
    """A conversation namespace with its own webhook.

    Attributes:
        value: Machine name, e.g. ``"general"``.
        label: Display name, e.g. ``"GENERAL"``.
        webhook_url: Endpoint that streams replies for this domain.
    """

    value: str = pydt.Field(min_length=1)
    label: str
    webhook_url: pydt.HttpUrl


DEFAULT_DOMAINS: tuple[Domain, ...] = (
    Domain(value="general", label="GENERAL",
           webhook_url="https://n8n.afrainity.com/webhook/general"),
    Domain(value="zesa", label="ZESA", webhook_url="https://n8n.afrainity.com/webhook/zesa"),
    Domain(value="praz", label="PRAZ", webhook_url="https://n8n.afrainity.com/webhook/praz"),
)


class WebhookConfig(BaseModel):
    """HTTP settings for webhook requests."""

    timeout: float = pydt.Field(default=120.0, gt=0)
    """Request timeout in seconds, applied to connect and to each read."""

    max_retries: int = pydt.Field(default=1, ge=1)
    """Attempts to open the connection. 1 means no retry."""

    retry_wait: float = pydt.Field(default=2.0, ge=0)
    """Seconds to wait between connection attempts."""

    headers: dict[str, str] | None = None
    """Additional headers for every request."""


class MutumwaConfig(BaseModel):
    """Top-level client configuration.

    Example:
        ```yaml
        default_domain: zesa
        default_language: shona
        webhook:
          timeout: 60
        domains:
          - value: zesa
            label: ZESA
            webhook_url: https://example.com/webhook/zesa
        ```
    """

    domains: tuple[Domain, ...] = DEFAULT_DOMAINS
    default_domain: str = "general"
    default_language: str = "english"
    webhook: WebhookConfig = WebhookConfig()

    @pydt.model_validator(mode="after")
    def val_domains(self) -> t.Self:
        if not self.domains:
            raise ValueError("At least one domain must be configured")
        values = [d.value for d in self.domains]
        if len(values) != len(set(values)):
            raise ValueError(f"Duplicate domain values: {values}")
        if self.default_domain not in values:
            raise ValueError(f"Default domain {self.default_domain!r} is not configured")
        return self

    def domain(self, value: str | None = None, /) -> Domain:
        """Look up a domain by value, or the default domain.

        Raises:
            ConfigError: If no domain has this value.
        """
        value = value or self.default_domain
        for domain in self.domains:
            if domain.value == value:
                return domain
        raise ConfigError(f"Unknown domain: {value!r}")


def load_config(path: PathLikes) -> MutumwaConfig:
    """Load a YAML configuration file.

    Raises:
        ConfigError: If the file cannot be read or does not validate.
    """
    fpath = p.Path(path)
    try:
        with fpath.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {fpath}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {fpath}: {e}") from e

    try:
        config = MutumwaConfig.model_validate(raw)
    except pydt.ValidationError as e:
        raise ConfigError(f"Invalid config in {fpath}: {e}") from e
    logger.info("Loaded config from %s (%s domains)", fpath, len(config.domains))
    return config
