"""Folding@Home stats API integration service"""
import logging
import time
from typing import Any, Optional

import requests

from folding_tc.config import Settings
from folding_tc.errors import ExternalConnectionError
from folding_tc.models.competition import User
from folding_tc.models.stats import RawStats

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429

class FoldingStatsAPI:
    """Retrieves lifetime points and units for users from the Folding@Home stats API"""

    def __init__(self, settings: Settings):
        self.base_url = settings.STATS_API_URL.rstrip('/')
        self.timeout = settings.STATS_REQUEST_TIMEOUT_SECONDS
        self.attempts = max(settings.STATS_REQUEST_ATTEMPTS, 1)
        self.seconds_between_attempts = settings.SECONDS_BETWEEN_STATS_REQUEST_ATTEMPTS

    def fetch_raw_total(self, user: User) -> RawStats:
        """
        Get the lifetime stats for a user.

        Raises:
            ExternalConnectionError: If the API cannot be reached or its response cannot be used
        """
        logger.debug(f"Getting stats for username/passkey '{user.folding_username}/{user.passkey}'")
        points = self.get_points(user.folding_username, user.passkey)
        units = self.get_units(user.folding_username, user.passkey)
        return RawStats(points=points, units=units)

    def get_points(self, folding_username: str, passkey: str) -> int:
        url = f"{self.base_url}/user/{folding_username}/stats"
        response = self._make_request(url, {'passkey': passkey})
        if not isinstance(response, dict) or 'earned' not in response:
            raise ExternalConnectionError(url, "Unexpected points response from Folding@Home API")
        return int(response['earned'])

    def get_units(self, folding_username: str, passkey: str) -> int:
        url = f"{self.base_url}/bonus"
        response = self._make_request(url, {'user': folding_username, 'passkey': passkey})
        if not isinstance(response, list):
            raise ExternalConnectionError(url, "Unexpected units response from Folding@Home API")

        if not response:
            logger.warning(f"No valid units found for user/passkey: '{folding_username}/{passkey}'")
            return 0

        if len(response) > 1:
            logger.warning(f"Too many unit responses returned for user '{folding_username}', using highest")
        return max(int(entry.get('finished', 0)) for entry in response)

    def _make_request(self, url: str, params: Optional[dict] = None) -> Any:
        """Make request to the stats API, retrying when rate limited"""
        headers = {
            'Accept': 'application/json',
            'Cache-Control': 'no-cache no-store'
        }

        for attempt in range(1, self.attempts + 1):
            logger.debug(f"Sending request #{attempt} to {url}")
            try:
                response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            except requests.Timeout as e:
                raise ExternalConnectionError(url, f"Timed out after {self.timeout}s") from e
            except requests.RequestException as e:
                raise ExternalConnectionError(url, "Unable to connect to Folding@Home API") from e

            if response.status_code == HTTP_TOO_MANY_REQUESTS:
                if attempt < self.attempts:
                    logger.debug(f"Received 'too many requests' response for request #{attempt}, "
                                 f"sleeping for {self.seconds_between_attempts}s")
                    time.sleep(self.seconds_between_attempts)
                continue

            if response.status_code != 200:
                raise ExternalConnectionError(url, f"Invalid response (status code: {response.status_code}): {response.text}")
            if not response.text or not response.text.strip():
                raise ExternalConnectionError(url, "Empty Folding@Home stats response")

            try:
                return response.json()
            except ValueError as e:
                raise ExternalConnectionError(url, "Unable to parse response from Folding@Home API") from e

        raise ExternalConnectionError(url, f"'Too many requests' response returned after {self.attempts} attempts")
