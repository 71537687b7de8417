# -*- coding: utf-8 -*-
"""
Disaster Feed Service Configuration

Centralized configuration for the disaster feed covering:
- Upstream disaster API base URL and per-category collection names
- Per-source fetch timeout
- Refresh intervals for the list view and the live map view
- Optional USGS earthquake feed (bounding box, limit)
- Risk scoring mode and seed
- Geocoder endpoint, country restriction, user agent and timeout
- Staleness threshold
- Logging level

All settings can be overridden via environment variables with the
``PROHORI_DISASTER_FEED_`` prefix (e.g. ``PROHORI_DISASTER_FEED_LOG_LEVEL``).

Example:
    >>> from prohori.disaster_feed.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.source_timeout_seconds, cfg.map_refresh_interval)

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from prohori.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "PROHORI_DISASTER_FEED_"

# Collection names used by the platform's document store, one per category.
DEFAULT_COLLECTIONS: Dict[str, str] = {
    "earthquake": "earthquakes",
    "flood": "disasterflood",
    "cyclone": "disastercyclone",
    "landslide": "disasterlandslide",
    "tsunami": "disastertsunami",
    "fire": "disasterfire",
    "other": "disasterother",
}

VALID_SCORING_MODES = frozenset({"seeded", "random"})

# Refresh presets: the disaster list polls slowly, the live map quickly.
VALID_REFRESH_VIEWS = frozenset({"list", "map", "default"})


def parse_collections(raw: str) -> Dict[str, str]:
    """Parse a ``category=collection,...`` mapping.

    An empty string yields the default mapping. Entries are applied over
    the defaults, and ``category=`` (empty collection) disables a category.

    Raises:
        ConfigurationError: If an entry is malformed or names an unknown
            category.
    """
    mapping = dict(DEFAULT_COLLECTIONS)
    if not raw or not raw.strip():
        return mapping

    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "=" not in entry:
            raise ConfigurationError(
                f"Malformed collection entry '{entry}', expected category=collection",
                context={"entry": entry},
            )
        category, collection = (part.strip() for part in entry.split("=", 1))
        category = category.lower()
        if category not in DEFAULT_COLLECTIONS:
            raise ConfigurationError(
                f"Unknown disaster category '{category}' in collection mapping",
                context={"category": category, "valid": sorted(DEFAULT_COLLECTIONS)},
            )
        if collection:
            mapping[category] = collection
        else:
            mapping.pop(category, None)
    return mapping


# ---------------------------------------------------------------------------
# DisasterFeedConfig
# ---------------------------------------------------------------------------


@dataclass
class DisasterFeedConfig:
    """Complete configuration for the Prohori disaster feed.

    Attributes:
        api_base_url: Base URL of the platform API that serves the disaster
            collections (``{api_base_url}/disasters/mongodb/<collection>``).
        log_level: Logging level for the ``prohori`` logger.
        collections: ``category=collection`` overrides applied on top of
            the default collection names.
        source_timeout_seconds: Upper bound for a single source fetch.
        list_refresh_interval: Refresh period for the disaster list view.
        map_refresh_interval: Refresh period for the live map view.
        default_refresh_interval: Period for the ``default`` view.
        refresh_view: Preset the service schedules with when no explicit
            interval is given: ``list``, ``map`` or ``default``.
        enable_usgs_feed: Whether to add the USGS earthquake feed as an
            extra earthquake source.
        usgs_feed_url: USGS FDSN event query endpoint.
        usgs_min_latitude: Southern edge of the USGS query box.
        usgs_max_latitude: Northern edge of the USGS query box.
        usgs_min_longitude: Western edge of the USGS query box.
        usgs_max_longitude: Eastern edge of the USGS query box.
        usgs_limit: Maximum number of USGS events per fetch.
        risk_scoring: ``seeded`` (reproducible) or ``random``.
        risk_seed: Seed for seeded risk scoring.
        geocoder_url: Nominatim base URL.
        geocoder_country_codes: Country restriction for forward search.
        geocoder_user_agent: User-Agent sent to the geocoder.
        geocoder_timeout_seconds: Geocoder request timeout.
        stale_after_seconds: Snapshot age after which status reports stale;
            0 means twice the running refresh interval.
    """

    # -- Upstream ------------------------------------------------------------
    api_base_url: str = "http://localhost:5000/api"
    collections: str = ""
    source_timeout_seconds: float = 10.0

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Refresh -------------------------------------------------------------
    list_refresh_interval: float = 300.0
    map_refresh_interval: float = 30.0
    default_refresh_interval: float = 30.0
    refresh_view: str = "default"

    # -- USGS feed -----------------------------------------------------------
    enable_usgs_feed: bool = False
    usgs_feed_url: str = "https://earthquake.usgs.gov/fdsnws/event/1/query"
    usgs_min_latitude: float = 20.0
    usgs_max_latitude: float = 27.0
    usgs_min_longitude: float = 88.0
    usgs_max_longitude: float = 93.0
    usgs_limit: int = 100

    # -- Risk scoring --------------------------------------------------------
    risk_scoring: str = "seeded"
    risk_seed: int = 0

    # -- Geocoding -----------------------------------------------------------
    geocoder_url: str = "https://nominatim.openstreetmap.org"
    geocoder_country_codes: str = "bd"
    geocoder_user_agent: str = "prohori-disaster-feed/0.4"
    geocoder_timeout_seconds: float = 5.0

    # -- Staleness -----------------------------------------------------------
    stale_after_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.risk_scoring not in VALID_SCORING_MODES:
            raise ConfigurationError(
                f"Unknown risk scoring mode '{self.risk_scoring}'",
                context={"valid": sorted(VALID_SCORING_MODES)},
            )
        if self.source_timeout_seconds <= 0:
            raise ConfigurationError(
                "source_timeout_seconds must be positive",
                context={"source_timeout_seconds": self.source_timeout_seconds},
            )
        if self.refresh_view not in VALID_REFRESH_VIEWS:
            raise ConfigurationError(
                f"Unknown refresh view '{self.refresh_view}'",
                context={"valid": sorted(VALID_REFRESH_VIEWS)},
            )

    def collection_map(self) -> Dict[str, str]:
        """Return the effective category -> collection mapping."""
        return parse_collections(self.collections)

    def refresh_interval(self, view: Optional[str] = None) -> float:
        """Refresh period for ``view``, defaulting to ``refresh_view``.

        Raises:
            ConfigurationError: If the view is not a known preset.
        """
        view = view or self.refresh_view
        intervals = {
            "list": self.list_refresh_interval,
            "map": self.map_refresh_interval,
            "default": self.default_refresh_interval,
        }
        if view not in intervals:
            raise ConfigurationError(
                f"Unknown refresh view '{view}'",
                context={"valid": sorted(VALID_REFRESH_VIEWS)},
            )
        return intervals[view]

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> DisasterFeedConfig:
        """Build a DisasterFeedConfig from environment variables.

        Every field can be overridden via
        ``PROHORI_DISASTER_FEED_<FIELD_UPPER>``. Boolean values accept
        ``true/1/yes`` (case-insensitive). Numeric values that fail to
        parse are logged and replaced by the default.

        Returns:
            Populated DisasterFeedConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %s",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            api_base_url=_str("API_BASE_URL", cls.api_base_url),
            collections=_str("COLLECTIONS", cls.collections),
            source_timeout_seconds=_float(
                "SOURCE_TIMEOUT_SECONDS", cls.source_timeout_seconds,
            ),
            log_level=_str("LOG_LEVEL", cls.log_level),
            list_refresh_interval=_float(
                "LIST_REFRESH_INTERVAL", cls.list_refresh_interval,
            ),
            map_refresh_interval=_float(
                "MAP_REFRESH_INTERVAL", cls.map_refresh_interval,
            ),
            default_refresh_interval=_float(
                "DEFAULT_REFRESH_INTERVAL", cls.default_refresh_interval,
            ),
            refresh_view=_str("REFRESH_VIEW", cls.refresh_view).lower(),
            enable_usgs_feed=_bool("ENABLE_USGS_FEED", cls.enable_usgs_feed),
            usgs_feed_url=_str("USGS_FEED_URL", cls.usgs_feed_url),
            usgs_min_latitude=_float(
                "USGS_MIN_LATITUDE", cls.usgs_min_latitude,
            ),
            usgs_max_latitude=_float(
                "USGS_MAX_LATITUDE", cls.usgs_max_latitude,
            ),
            usgs_min_longitude=_float(
                "USGS_MIN_LONGITUDE", cls.usgs_min_longitude,
            ),
            usgs_max_longitude=_float(
                "USGS_MAX_LONGITUDE", cls.usgs_max_longitude,
            ),
            usgs_limit=_int("USGS_LIMIT", cls.usgs_limit),
            risk_scoring=_str("RISK_SCORING", cls.risk_scoring).lower(),
            risk_seed=_int("RISK_SEED", cls.risk_seed),
            geocoder_url=_str("GEOCODER_URL", cls.geocoder_url),
            geocoder_country_codes=_str(
                "GEOCODER_COUNTRY_CODES", cls.geocoder_country_codes,
            ),
            geocoder_user_agent=_str(
                "GEOCODER_USER_AGENT", cls.geocoder_user_agent,
            ),
            geocoder_timeout_seconds=_float(
                "GEOCODER_TIMEOUT_SECONDS", cls.geocoder_timeout_seconds,
            ),
            stale_after_seconds=_float(
                "STALE_AFTER_SECONDS", cls.stale_after_seconds,
            ),
        )

        logger.info(
            "DisasterFeedConfig loaded: api=%s, sources=%d, timeout=%.1fs, "
            "intervals list=%.0fs map=%.0fs default=%.0fs (view=%s), usgs=%s, "
            "scoring=%s(seed=%d), geocoder=%s",
            config.api_base_url,
            len(config.collection_map()),
            config.source_timeout_seconds,
            config.list_refresh_interval,
            config.map_refresh_interval,
            config.default_refresh_interval,
            config.refresh_view,
            config.enable_usgs_feed,
            config.risk_scoring,
            config.risk_seed,
            config.geocoder_url,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[DisasterFeedConfig] = None
_config_lock = threading.Lock()


def get_config() -> DisasterFeedConfig:
    """Return the singleton DisasterFeedConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = DisasterFeedConfig.from_env()
    return _config_instance


def set_config(config: DisasterFeedConfig) -> None:
    """Replace the singleton DisasterFeedConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("DisasterFeedConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "DEFAULT_COLLECTIONS",
    "VALID_REFRESH_VIEWS",
    "DisasterFeedConfig",
    "parse_collections",
    "get_config",
    "set_config",
    "reset_config",
]
