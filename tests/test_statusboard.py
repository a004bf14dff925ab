import arrow
import pytest

from statusframe.sources import DashboardData, SourceStatus
from statusframe.statusboard import StatusBoard

from .conftest import PARIS, SAMPLE_FEED


def test_layout_uses_configured_timezone_and_locale(offline_config):
    offline_config["display"]["locale"] = "fr"
    board = StatusBoard(offline_config)
    now = arrow.Arrow(2024, 12, 31, 9, 0, tzinfo="UTC")
    layout = board.build_layout(now, DashboardData(feeds=[SAMPLE_FEED]))
    texts = [t.text for t in layout.panel("agenda").texts]
    assert texts == ["TD Algèbre", "Mercredi 09h00"]
    assert layout.panel("time").texts[0].text == "10:00"


def test_rotation_comes_from_display_config(offline_config):
    offline_config["display"]["rotation"] = 0
    layout = StatusBoard(offline_config).build_layout(arrow.Arrow(2025, 1, 1, tzinfo=PARIS), DashboardData())
    assert layout.output_size == (640, 460)


def test_svg_with_no_sources_shows_placeholders(offline_config):
    svg = StatusBoard(offline_config).generate_svg(arrow.Arrow(2025, 1, 1, tzinfo=PARIS), DashboardData())
    assert "NO UPCOMING EVENTS" in svg
    assert "ERR" in svg
    assert "No departures" in svg


def test_gather_logs_failed_sources(offline_config, monkeypatch, caplog):
    data = DashboardData(statuses={"weather": SourceStatus.FAILED, "transit": SourceStatus.MISSING_KEY})
    monkeypatch.setattr("statusframe.statusboard.gather_sources", lambda *args: data)
    board = StatusBoard(offline_config)
    with caplog.at_level("WARNING", logger="statusframe.statusboard"):
        assert board.gather(board.now()) is data
    assert "Source weather failed" in caplog.text
    assert "Source transit skipped" in caplog.text


def test_generate_image_rasterizes_layout(offline_config, monkeypatch):
    captured = {}

    def fake_rasterize(layout, font_family=None, grayscale=True, gray_levels=0):
        captured.update(layout=layout, grayscale=grayscale, levels=gray_levels)
        return b"png"

    monkeypatch.setattr("statusframe.statusboard.rasterize", fake_rasterize)
    offline_config["display"]["gray_levels"] = 16
    png = StatusBoard(offline_config).generate_image(arrow.Arrow(2025, 1, 1, tzinfo=PARIS), DashboardData())
    assert png == b"png"
    assert captured["levels"] == 16
    assert captured["layout"].output_size == (460, 640)


@pytest.mark.parametrize("value, expected", [
    (None, "en"),
    ("fr", "fr"),
    ("Deutsch", "de"),
    ("de-DE", "de-de"),
    ("klingon", "en"),
])
def test_locale_is_normalized(offline_config, value, expected):
    offline_config["display"]["locale"] = value
    assert StatusBoard(offline_config).locale == expected


def test_unsupported_locale_still_renders(offline_config, caplog):
    offline_config["display"]["locale"] = "not-a-locale"
    with caplog.at_level("WARNING", logger="statusframe.statusboard"):
        board = StatusBoard(offline_config)
    svg = board.generate_svg(arrow.Arrow(2024, 12, 31, 10, tzinfo=PARIS), DashboardData(feeds=[SAMPLE_FEED]))
    assert "Wednesday 09h00" in svg
    assert "Unsupported locale" in caplog.text


@pytest.mark.parametrize("value, expected", [(0, 0), (90, 90), (-90, 270), (450, 90), (45, 90), ("sideways", 90)])
def test_rotation_is_validated(offline_config, value, expected):
    offline_config["display"]["rotation"] = value
    assert StatusBoard(offline_config).constants.rotation == expected
