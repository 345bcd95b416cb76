"""Configuration system for the keyring broker.

Loads broker config from `.keyring-broker/<profile>/config.yaml`, supports
environment variable expansion, and resolves the runtime mode that picks
the redirect endpoint handed back by ``submit_request``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from keyring_broker.core.keyring import DEFAULT_REDIRECT_MESSAGE
from keyring_broker.core.permissions import default_origin_permissions


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")

RUNTIME_MODE_ENV = "KEYRING_BROKER_ENV"


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    Unset variables expand to an empty string so that an unconfigured
    endpoint reads as "no URL" rather than a literal placeholder.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class RedirectConfig(BaseModel):
    """Where callers are sent to approve a submitted request."""

    production_url: Optional[str] = None    # ${DAPP_ORIGIN_PRODUCTION}
    development_url: Optional[str] = None   # ${DAPP_ORIGIN_DEVELOPMENT}
    version_suffix: str = ""
    message: str = DEFAULT_REDIRECT_MESSAGE

    def url_for(self, mode: str) -> Optional[str]:
        """Return the endpoint for *mode*, or ``None`` if it isn't configured."""
        base = self.production_url if mode == "production" else self.development_url
        if not base:
            return None
        if self.version_suffix:
            return base.rstrip("/") + "/" + self.version_suffix.lstrip("/")
        return base


class BrokerConfig(BaseModel):
    """Root configuration object for one broker profile."""

    name: str = "Keyring Broker"
    runtime_mode: Optional[str] = None  # None = read KEYRING_BROKER_ENV
    redirect: RedirectConfig = Field(default_factory=RedirectConfig)
    permissions: dict[str, list[str]] = Field(default_factory=default_origin_permissions)
    reject_orphaned_requests: bool = False
    journal_events: bool = True  # append notifications to the profile database

    def resolved_mode(self) -> str:
        """``"production"`` or ``"development"``."""
        mode = self.runtime_mode or os.environ.get(RUNTIME_MODE_ENV, "")
        return "production" if mode.strip().lower() == "production" else "development"

    def redirect_url(self) -> Optional[str]:
        return self.redirect.url_for(self.resolved_mode())


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def slugify(name: str) -> str:
    """Convert a profile name to a filesystem-safe slug.

    ``"My Host"`` → ``"my-host"``, ``""`` → ``"default"``.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "default"


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.keyring-broker/`` root directory (no auto-create)."""
    if base is None:
        base = Path.cwd()
    return base / ".keyring-broker"


def get_profile_dir(
    profile: str = "default",
    base: Path | None = None,
    *,
    create: bool = True,
) -> Path:
    """Return the directory for a profile, e.g. ``.keyring-broker/<slug>/``.

    Parameters
    ----------
    profile:
        Profile slug (e.g. ``"default"``, ``"staging"``).
    base:
        Parent directory that contains (or will contain) the
        ``.keyring-broker/`` folder.  Defaults to the current working
        directory.
    create:
        If *True* (default), create the directory tree if it doesn't exist.
    """
    profile_dir = get_root_dir(base) / slugify(profile)
    if create:
        profile_dir.mkdir(parents=True, exist_ok=True)
    return profile_dir


def load_config(path: Path) -> BrokerConfig:
    """Load and validate a broker configuration from a YAML file.

    A missing file yields the defaults. Environment variable placeholders
    (``${VAR}``) are expanded before validation.
    """
    if not path.exists():
        return BrokerConfig()
    raw_data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    expanded = _expand_env_recursive(raw_data)
    return BrokerConfig.model_validate(expanded)


def save_config(config: BrokerConfig, path: Path) -> None:
    """Serialize a :class:`BrokerConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
