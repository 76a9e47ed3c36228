# roster_api/services/distance_provider.py
from __future__ import annotations

from dataclasses import dataclass
import logging

import requests

from roster_api.common.errors import ProviderError

log = logging.getLogger(__name__)

DEFAULT_DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


@dataclass(frozen=True)
class RouteEstimate:
    distance_km: float
    duration_min: float


class GoogleDirectionsProvider:
    """
    Driving distance/duration between two free-text addresses.

    route() either returns a RouteEstimate or raises ProviderError; network
    errors, timeouts, non-OK statuses and empty route lists all count as
    failure. Rounding is left to the caller.
    """

    def __init__(self, api_key: str, url: str = DEFAULT_DIRECTIONS_URL, timeout: float = 5.0,
                 session: requests.Session | None = None):
        self.api_key = api_key
        self.url = url or DEFAULT_DIRECTIONS_URL
        self.timeout = timeout
        self.session = session or requests.Session()

    def route(self, origin: str, destination: str) -> RouteEstimate:
        params = {
            "origin": origin,
            "destination": destination,
            "mode": "driving",
            "key": self.api_key,
        }
        try:
            resp = self.session.get(self.url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as ex:
            raise ProviderError(f"Directions request failed: {ex}")
        except ValueError:
            raise ProviderError("Directions response was not JSON")

        status = body.get("status")
        if status != "OK" or not body.get("routes"):
            raise ProviderError(f"Directions lookup returned {status or 'no status'}")

        try:
            leg = body["routes"][0]["legs"][0]
            meters = float(leg["distance"]["value"])
            seconds = float(leg["duration"]["value"])
        except (KeyError, IndexError, TypeError, ValueError):
            raise ProviderError("Directions response missing distance/duration")

        return RouteEstimate(distance_km=meters / 1000.0, duration_min=seconds / 60.0)


def build_provider(config) -> GoogleDirectionsProvider | None:
    """Provider from app config, or None when no API key is configured."""
    key = config.get("DISTANCE_PROVIDER_API_KEY")
    if not key:
        log.info("no distance provider configured; travel will use fallback estimates")
        return None
    return GoogleDirectionsProvider(
        api_key=key,
        url=config.get("DISTANCE_PROVIDER_URL") or DEFAULT_DIRECTIONS_URL,
        timeout=float(config.get("DISTANCE_PROVIDER_TIMEOUT", 5)),
    )
