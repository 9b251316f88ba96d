from datetime import date

import pytest
import requests
import responses as resp_mock
from responses import matchers

from adapters.base import DateWindow
from adapters.reservation_api import ReservationApiAdapter
from errors import FetchError

ENDPOINT = "https://api.example-reservations.com/v1/availabilities"
VENUE_ID = "12345"

W1 = DateWindow(start=date(2025, 7, 1), end=date(2025, 7, 31))
W2 = DateWindow(start=date(2025, 7, 31), end=date(2025, 8, 30))

RECORD_W1 = {"date": "2025-07-04", "isOpen": True, "shifts": []}
RECORD_W2 = {"date": "2025-08-02", "isOpen": True, "shifts": []}


def params_for(begin, end):
    return matchers.query_param_matcher({"venueId": VENUE_ID, "date_begin": begin, "date_end": end})


@pytest.fixture
def adapter():
    return ReservationApiAdapter(endpoint=ENDPOINT, timeout=5)


@resp_mock.activate
def test_returns_records_in_window_order(adapter):
    # Registered out of order on purpose
    resp_mock.add(resp_mock.GET, ENDPOINT, json=[RECORD_W2], status=200,
                  match=[params_for("2025-07-31", "2025-08-29")])
    resp_mock.add(resp_mock.GET, ENDPOINT, json=[RECORD_W1], status=200,
                  match=[params_for("2025-07-01", "2025-07-30")])

    results = adapter.get_availability(VENUE_ID, [W1, W2])

    assert results == [[RECORD_W1], [RECORD_W2]]
    assert len(resp_mock.calls) == 2


@resp_mock.activate
def test_one_request_per_window(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, json=[], status=200)
    windows = [
        DateWindow(start=date(2025, 7, 1), end=date(2025, 7, 11)),
        DateWindow(start=date(2025, 7, 11), end=date(2025, 7, 21)),
        DateWindow(start=date(2025, 7, 21), end=date(2025, 7, 31)),
    ]
    results = adapter.get_availability(VENUE_ID, windows)
    assert results == [[], [], []]
    assert len(resp_mock.calls) == 3


def test_request_carries_timeout(mocker, adapter):
    mock_get = mocker.patch("adapters.reservation_api.requests.get")
    mock_get.return_value.json.return_value = []

    adapter.get_availability(VENUE_ID, [W1])

    assert mock_get.call_args[1]["timeout"] == 5
    assert mock_get.call_args[1]["params"] == {
        "venueId": VENUE_ID,
        "date_begin": "2025-07-01",
        "date_end": "2025-07-30",
    }


@resp_mock.activate
def test_failure_on_second_window_fails_whole_fetch(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, json=[RECORD_W1], status=200,
                  match=[params_for("2025-07-01", "2025-07-30")])
    resp_mock.add(resp_mock.GET, ENDPOINT, status=500,
                  match=[params_for("2025-07-31", "2025-08-29")])

    with pytest.raises(FetchError) as exc_info:
        adapter.get_availability(VENUE_ID, [W1, W2])

    assert exc_info.value.window == W2
    assert len(resp_mock.calls) == 2


@resp_mock.activate
def test_earliest_failed_window_is_reported(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, status=503)

    with pytest.raises(FetchError) as exc_info:
        adapter.get_availability(VENUE_ID, [W1, W2])

    assert exc_info.value.window == W1


@resp_mock.activate
def test_connection_error_is_fetch_error(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, body=requests.ConnectionError("connection refused"))

    with pytest.raises(FetchError):
        adapter.get_availability(VENUE_ID, [W1])


@resp_mock.activate
def test_timeout_is_fetch_error(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, body=requests.Timeout("read timed out"))

    with pytest.raises(FetchError):
        adapter.get_availability(VENUE_ID, [W1])


@resp_mock.activate
def test_non_json_body_is_fetch_error(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, body="<html>maintenance</html>", status=200)

    with pytest.raises(FetchError) as exc_info:
        adapter.get_availability(VENUE_ID, [W1])

    assert "JSON" in str(exc_info.value)


@resp_mock.activate
def test_json_object_body_is_fetch_error(adapter):
    resp_mock.add(resp_mock.GET, ENDPOINT, json={"error": "too many days"}, status=200)

    with pytest.raises(FetchError):
        adapter.get_availability(VENUE_ID, [W1])


@resp_mock.activate
def test_no_windows_makes_no_requests(adapter):
    assert adapter.get_availability(VENUE_ID, []) == []
    assert len(resp_mock.calls) == 0
