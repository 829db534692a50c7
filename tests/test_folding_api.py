"""
Tests for the Folding@Home stats API client, with requests mocked.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_user

from folding_tc.config import Settings
from folding_tc.errors import ExternalConnectionError
from folding_tc.models.competition import Team
from folding_tc.services.folding import FoldingStatsAPI

USER = make_user(1, Team(id=1, name="Team One"))


def response(status_code: int = 200, body=None, text: str = None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.text = text if text is not None else ("{}" if body is None else str(body))
    mock.json.return_value = body
    return mock


@pytest.fixture
def api():
    return FoldingStatsAPI(Settings(
        STATS_API_URL="https://stats.example.org/",
        STATS_REQUEST_ATTEMPTS=2,
        SECONDS_BETWEEN_STATS_REQUEST_ATTEMPTS=5.0
    ))


class TestFetchRawTotal:
    """Tests for FoldingStatsAPI.fetch_raw_total."""

    @patch('folding_tc.services.folding.requests.get')
    def test_points_and_units(self, mock_get, api):
        mock_get.side_effect = [
            response(body={'earned': 12_345}),
            response(body=[{'finished': 10}, {'finished': 42}]),
        ]

        total = api.fetch_raw_total(USER)

        assert (total.points, total.units) == (12_345, 42)
        points_call, units_call = mock_get.call_args_list
        assert points_call.args[0] == "https://stats.example.org/user/user1/stats"
        assert points_call.kwargs['params'] == {'passkey': 'passkey1'}
        assert units_call.args[0] == "https://stats.example.org/bonus"
        assert units_call.kwargs['params'] == {'user': 'user1', 'passkey': 'passkey1'}

    @patch('folding_tc.services.folding.requests.get')
    def test_no_units(self, mock_get, api):
        mock_get.side_effect = [response(body={'earned': 5}), response(body=[], text="[]")]
        assert api.fetch_raw_total(USER).units == 0


class TestMakeRequest:
    """Tests for request error handling and retries."""

    @patch('folding_tc.services.folding.time.sleep')
    @patch('folding_tc.services.folding.requests.get')
    def test_retry_after_too_many_requests(self, mock_get, mock_sleep, api):
        mock_get.side_effect = [response(status_code=429), response(body={'earned': 7})]

        assert api.get_points('user1', 'passkey1') == 7
        mock_sleep.assert_called_once_with(5.0)

    @patch('folding_tc.services.folding.time.sleep')
    @patch('folding_tc.services.folding.requests.get')
    def test_too_many_requests_exhausted(self, mock_get, mock_sleep, api):
        mock_get.return_value = response(status_code=429)

        with pytest.raises(ExternalConnectionError):
            api.get_points('user1', 'passkey1')
        assert mock_get.call_count == 2

    @patch('folding_tc.services.folding.requests.get')
    def test_error_status(self, mock_get, api):
        mock_get.return_value = response(status_code=500, text="Internal error")
        with pytest.raises(ExternalConnectionError):
            api.get_points('user1', 'passkey1')

    @patch('folding_tc.services.folding.requests.get')
    def test_empty_body(self, mock_get, api):
        mock_get.return_value = response(text="  ")
        with pytest.raises(ExternalConnectionError):
            api.get_points('user1', 'passkey1')

    @patch('folding_tc.services.folding.requests.get')
    def test_timeout(self, mock_get, api):
        mock_get.side_effect = requests.Timeout()
        with pytest.raises(ExternalConnectionError):
            api.get_units('user1', 'passkey1')

    @patch('folding_tc.services.folding.requests.get')
    def test_connection_error(self, mock_get, api):
        mock_get.side_effect = requests.ConnectionError()
        with pytest.raises(ExternalConnectionError):
            api.fetch_raw_total(USER)

    @patch('folding_tc.services.folding.requests.get')
    def test_invalid_json(self, mock_get, api):
        invalid = response(text="not json")
        invalid.json.side_effect = ValueError("not json")
        mock_get.return_value = invalid
        with pytest.raises(ExternalConnectionError):
            api.get_points('user1', 'passkey1')

    @patch('folding_tc.services.folding.requests.get')
    def test_unexpected_points_response(self, mock_get, api):
        mock_get.return_value = response(body={'unexpected': 1})
        with pytest.raises(ExternalConnectionError):
            api.get_points('user1', 'passkey1')
