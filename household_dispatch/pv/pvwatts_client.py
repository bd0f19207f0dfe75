"""PVWatts API client – fetch the hourly AC output of a 1 kW PV system.

Uses the NREL PVWatts v8 REST API with ``timeframe=hourly`` and
``system_capacity=1`` so the returned ``outputs.ac`` series (W) divided by
1 000 is directly the normalised yield in kW per installed kW.

Key behaviour
-------------
- Caches the raw JSON response on disk (``~/.household_dispatch_cache/``)
  keyed by a SHA-256 hash of the query parameters.  The API key is not part
  of the cache key and is never written to disk.
- Retries up to :data:`~household_dispatch.config.defaults.PVWATTS_RETRY_MAX`
  times with exponential backoff on HTTP 429 / 5xx, timeouts and connection
  errors.
- :func:`load_pvwatts_json` reads a previously saved response instead of
  calling the API.

Typical usage::

    from household_dispatch.pv.pvwatts_client import PVWattsClient
    client = PVWattsClient(api_key="...")
    curve = client.fetch_yield_curve(latitude=55.746, longitude=13.255,
                                     tilt_deg=18, azimuth_deg=145)
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any

import numpy as np
import requests

from household_dispatch.config.defaults import (
    PVWATTS_API_URL,
    PVWATTS_CACHE_DIR,
    PVWATTS_REQUEST_TIMEOUT_S,
    PVWATTS_RETRY_BACKOFF_FACTOR,
    PVWATTS_RETRY_MAX,
    PVWATTS_SYSTEM_CAPACITY_KW,
    W_TO_KW,
)
from household_dispatch.pv.yield_curve import YieldCurve

logger = logging.getLogger(__name__)

# HTTP status codes that warrant a retry (rate-limit and server errors)
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_SECRET_PARAMS: frozenset[str] = frozenset({"api_key"})


class PVWattsError(RuntimeError):
    """Raised when the PVWatts API returns an error that cannot be retried."""


class PVWattsClient:
    """Thin client for the PVWatts v8 hourly endpoint.

    Parameters
    ----------
    api_key:
        NREL developer API key.
    cache_dir:
        Directory for the persistent JSON response cache.  ``None`` disables
        caching (useful in tests).
    url:
        PVWatts endpoint URL.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Maximum number of attempts on transient errors.
    backoff_factor:
        Initial wait time (seconds); attempt *k* waits
        ``backoff_factor × 2^(k-1)``.
    """

    def __init__(
        self,
        api_key: str,
        cache_dir: str | Path | None = PVWATTS_CACHE_DIR,
        url: str = PVWATTS_API_URL,
        timeout: int = PVWATTS_REQUEST_TIMEOUT_S,
        max_retries: int = PVWATTS_RETRY_MAX,
        backoff_factor: float = PVWATTS_RETRY_BACKOFF_FACTOR,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor

        if cache_dir is None:
            self._cache_dir: Path | None = None
        else:
            self._cache_dir = Path(cache_dir).expanduser()
            self._cache_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_yield_curve(
        self,
        latitude: float,
        longitude: float,
        tilt_deg: float,
        azimuth_deg: float,
        losses_pct: float = 5.0,
        module_type: int = 0,
        array_type: int = 1,
        dataset: str = "intl",
        radius_km: int = 500,
    ) -> YieldCurve:
        """Fetch the normalised hourly yield curve for a site.

        Parameters
        ----------
        latitude, longitude:
            Site location in decimal degrees.
        tilt_deg:
            Panel tilt from horizontal (0 … 90).
        azimuth_deg:
            Panel azimuth (0 … 360, 180 = south).
        losses_pct:
            Total system losses in percent.
        module_type:
            0 = standard, 1 = premium, 2 = thin film.
        array_type:
            0 = fixed open rack, 1 = fixed roof mount, 2-4 = trackers.
        dataset:
            Weather dataset (``"nsrdb"``, ``"tmy2"``, ``"tmy3"``, ``"intl"``).
        radius_km:
            Weather station search radius; 0 selects the closest station.

        Raises
        ------
        PVWattsError
            On API errors, exhausted retries or malformed responses.
        """
        params = {
            "system_capacity": PVWATTS_SYSTEM_CAPACITY_KW,
            "module_type": module_type,
            "losses": losses_pct,
            "array_type": array_type,
            "tilt": tilt_deg,
            "azimuth": azimuth_deg,
            "timeframe": "hourly",
            "radius": radius_km,
            "lat": latitude,
            "lon": longitude,
            "dataset": dataset,
        }
        raw = self._get_with_cache(params)
        return parse_pvwatts_response(raw)

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(params: dict[str, Any]) -> str:
        """Return a 32-char SHA-256 hex digest for *params* (secrets excluded)."""
        public = {k: v for k, v in params.items() if k not in _SECRET_PARAMS}
        canonical = json.dumps(public, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()[:32]

    def _cache_path(self, params: dict[str, Any]) -> Path | None:
        """Return the cache file ``Path``, or ``None`` if caching is disabled."""
        if self._cache_dir is None:
            return None
        return self._cache_dir / f"pvwatts_{self._cache_key(params)}.json"

    def _get_with_cache(self, params: dict[str, Any]) -> dict:
        """Return parsed JSON, served from disk cache when available."""
        cache_file = self._cache_path(params)

        if cache_file is not None and cache_file.exists():
            logger.info("PVWatts cache hit: %s", cache_file)
            with cache_file.open("r", encoding="utf-8") as fh:
                return json.load(fh)

        logger.info("PVWatts cache miss – fetching from API")
        raw = self._fetch(params)

        if cache_file is not None:
            logger.debug("Writing PVWatts cache: %s", cache_file)
            with cache_file.open("w", encoding="utf-8") as fh:
                json.dump(raw, fh)

        return raw

    # ------------------------------------------------------------------
    # HTTP with retry/backoff
    # ------------------------------------------------------------------

    def _fetch(self, params: dict[str, Any]) -> dict:
        """Execute the HTTP GET with exponential backoff retry."""
        query = dict(params, api_key=self._api_key)
        last_exc: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            wait = self._backoff_factor * (2 ** (attempt - 1))
            try:
                logger.debug(
                    "PVWatts request attempt %d/%d: %s",
                    attempt,
                    self._max_retries,
                    self._url,
                )
                resp = requests.get(self._url, params=query, timeout=self._timeout)

                if resp.status_code == 200:
                    return resp.json()

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    logger.warning(
                        "PVWatts HTTP %d on attempt %d/%d – retrying in %.1fs",
                        resp.status_code,
                        attempt,
                        self._max_retries,
                        wait,
                    )
                    time.sleep(wait)
                    last_exc = PVWattsError(
                        f"HTTP {resp.status_code} from PVWatts "
                        f"after {attempt} attempt(s)"
                    )
                    continue

                # Non-retryable client error (4xx except 429)
                try:
                    err_body = resp.json()
                    detail = "; ".join(map(str, err_body.get("errors") or [])) or str(err_body)
                except ValueError:
                    detail = resp.text[:300]
                raise PVWattsError(
                    f"PVWatts API error (HTTP {resp.status_code}): {detail}"
                )

            except requests.Timeout as exc:
                logger.warning(
                    "PVWatts timeout on attempt %d/%d – retrying in %.1fs",
                    attempt,
                    self._max_retries,
                    wait,
                )
                time.sleep(wait)
                last_exc = exc

            except requests.ConnectionError as exc:
                logger.warning(
                    "PVWatts connection error on attempt %d/%d – retrying in %.1fs: %s",
                    attempt,
                    self._max_retries,
                    wait,
                    exc,
                )
                time.sleep(wait)
                last_exc = exc

        raise PVWattsError(
            f"PVWatts request failed after {self._max_retries} attempt(s)."
        ) from last_exc


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def parse_pvwatts_response(raw: dict) -> YieldCurve:
    """Parse a PVWatts JSON response into a :class:`YieldCurve`.

    ``outputs.ac`` holds hourly AC output in **W** for the requested
    1 kW system; multiplying by :data:`W_TO_KW` gives kW per kW.

    Raises
    ------
    PVWattsError
        When the response reports errors or lacks ``outputs.ac``.
    """
    if not isinstance(raw, dict):
        raise PVWattsError("Unexpected PVWatts response: not a JSON object.")
    errors = raw.get("errors") or []
    if errors:
        raise PVWattsError(f"PVWatts reported error(s): {'; '.join(map(str, errors))}")
    for warning in raw.get("warnings") or []:
        logger.warning("PVWatts warning: %s", warning)

    try:
        ac_w = raw["outputs"]["ac"]
    except (KeyError, TypeError) as exc:
        raise PVWattsError(
            "Unexpected PVWatts response structure: missing 'outputs.ac' key."
        ) from exc

    station = raw.get("station_info") or {}
    if station:
        logger.info(
            "PVWatts station: %s (lat=%s, lon=%s, distance=%s m)",
            station.get("city", "?"),
            station.get("lat", "?"),
            station.get("lon", "?"),
            station.get("distance", "?"),
        )

    try:
        return YieldCurve(np.asarray(ac_w, dtype=float) * W_TO_KW)
    except ValueError as exc:
        raise PVWattsError(f"Invalid PVWatts 'outputs.ac' series: {exc}") from exc


def load_pvwatts_json(path: str | Path) -> YieldCurve:
    """Load a saved PVWatts JSON response from *path*.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    PVWattsError
        When the content is not a valid PVWatts response.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"PVWatts JSON file not found: '{path}'. "
            "Check the 'inputs.pvwatts_json' path in the scenario JSON."
        )
    with path.open("r", encoding="utf-8") as fh:
        try:
            raw = json.load(fh)
        except json.JSONDecodeError as exc:
            raise PVWattsError(f"Invalid JSON in PVWatts file '{path}': {exc.msg}") from exc
    logger.debug("Loaded PVWatts response from '%s'", path)
    return parse_pvwatts_response(raw)
