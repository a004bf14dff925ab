import arrow
import pytest
import requests

from statusframe.config import DEFAULT_CONFIG, merge_config

PARIS = "Europe/Paris"

SAMPLE_FEED = "\r\n".join([
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "BEGIN:VEVENT",
    "SUMMARY:Conf. De. Méth. Algèbre",
    "DTSTART:20250101T090000",
    "DTEND:20250101T103000",
    "LOCATION:Amphi B",
    "END:VEVENT",
    "END:VCALENDAR",
])


class FakeResponse:
    def __init__(self, payload=None, text="", content=b"", headers=None, status=200):
        self._payload = payload
        self.text = text
        self.content = content
        self.headers = headers or {}
        self.status_code = status

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def paris_now():
    return arrow.Arrow(2024, 12, 31, 10, 0, tzinfo=PARIS)


@pytest.fixture
def offline_config():
    """Configuration with every remote source disabled."""
    return merge_config(DEFAULT_CONFIG, {
        "display": {"timezone": PARIS},
        "weather": {"icon_base_url": ""},
    })
