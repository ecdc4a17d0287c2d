"""Client for the Launch Library 2 upcoming-launch feed."""
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from processor.models import RawLaunch

logger = logging.getLogger(__name__)


class LaunchLibraryClient:
    """Fetches the window of upcoming launches from Launch Library 2."""

    API_URL = "https://ll.thespacedevs.com/2.3.0/launches/"

    def __init__(self, timeout: int = 30, limit: int = 100, base_url: str = API_URL):
        """
        Initialize the Launch Library client.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            limit: Maximum number of launches requested (default: 100)
            base_url: Launches endpoint
        """
        self.timeout = timeout
        self.limit = limit
        self.base_url = base_url

    def fetch_launches(self, now: datetime, days_ahead: int = 7) -> List[RawLaunch]:
        """
        Fetch launches scheduled from the start of today through days_ahead.

        Args:
            now: Current time, its UTC date starts the window
            days_ahead: Length of the window in days (default: 7)

        Returns:
            List of RawLaunch objects in upstream order

        Raises:
            requests.RequestException: If the request fails
            ValueError: If the response body has no results list
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        start = datetime.combine(
            now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc
        )
        end = start + timedelta(days=days_ahead)

        params = {
            'net__gte': start.isoformat(),
            'net__lte': end.isoformat(),
            'limit': self.limit,
            'ordering': 'net'
        }

        logger.info(f"Fetching launches between {params['net__gte']} and {params['net__lte']}")
        response = requests.get(self.base_url, params=params, timeout=self.timeout)
        response.raise_for_status()

        launches = self._parse_launches(response.json())
        logger.info(f"Successfully fetched {len(launches)} launches")
        return launches

    def _parse_launches(self, payload: Any) -> List[RawLaunch]:
        """
        Parse launches from the API response body.

        Args:
            payload: Decoded JSON response

        Returns:
            List of RawLaunch objects

        Raises:
            ValueError: If the body is not an object with a results list
        """
        if not isinstance(payload, dict) or not isinstance(payload.get('results'), list):
            logger.error("Unexpected response body, expected an object with a results list")
            raise ValueError("Launch Library response has no results list")

        launches = []
        for item in payload['results']:
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object launch entry: {item!r}")
                continue
            launches.append(self._parse_launch(item))

        return launches

    def _parse_launch(self, item: Dict[str, Any]) -> RawLaunch:
        """
        Flatten a single launch object.

        Missing nested objects (image, provider, pad location) become
        empty strings.
        """
        image = _as_dict(item.get('image'))
        provider = _as_dict(item.get('launch_service_provider'))
        location = _as_dict(_as_dict(item.get('pad')).get('location'))

        return RawLaunch(
            launch_id=_as_text(item.get('id')),
            name=_as_text(item.get('name')),
            net=_as_text(item.get('net')),
            last_updated=_as_text(item.get('last_updated')),
            image_url=_as_text(image.get('image_url')),
            provider_name=_as_text(provider.get('name')),
            location_name=_as_text(location.get('name'))
        )


def _as_dict(value: Optional[Any]) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Optional[Any]) -> str:
    return '' if value is None else str(value)
