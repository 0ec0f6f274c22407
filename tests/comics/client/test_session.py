"""Tests for client-side panel state and placeholder imagery."""

import base64
import io

import pytest
from PIL import Image

from comics.client.placeholders import PlaceholderCache, capture_frame, make_placeholder, next_version
from comics.client.session import PanelSession


@pytest.fixture
def session():
    return PanelSession(video="vid", style="noir")


@pytest.fixture
def frame():
    return Image.new("RGB", (1920, 1080), (200, 120, 40))


class TestPanelSession:
    def test_pending_then_available(self, session):
        assert session.mark_pending("00-15", "data:one")
        assert session.is_pending("00-15")

        session.mark_available("00-15", "/a.jpg")

        assert session.is_available("00-15")
        assert not session.is_pending("00-15")
        assert "00-15" not in session.placeholders

    def test_available_never_regresses_to_pending(self, session):
        session.mark_available("00-15", "/a.jpg")
        assert not session.mark_pending("00-15", "data:one")
        assert not session.is_pending("00-15")
        assert session.url_for("00-15") == "/a.jpg"

    def test_same_url_keeps_version(self, session):
        session.mark_available("00-15", "/a.jpg")
        version = session.available["00-15"].version
        session.mark_available("00-15", "/a.jpg")
        assert session.available["00-15"].version == version

    def test_refresh_bumps_version(self, session):
        session.mark_available("00-15", "/a.jpg")
        version = session.available["00-15"].version
        session.refresh("00-15", "/a.jpg")
        assert session.available["00-15"].version > version

    def test_empty_values_ignored(self, session):
        session.mark_available("", "/a.jpg")
        session.mark_available("00-15", "")
        assert not session.has_anything()

    def test_forget(self, session):
        session.mark_available("00-15", "/a.jpg")
        session.mark_pending("00-30", "data:one")
        session.forget("00-15")
        session.forget("00-30")
        assert not session.has_anything()

    def test_known_keys_in_bucket_order(self, session):
        session.mark_available("100-00", "/c.jpg")
        session.mark_available("00-30", "/b.jpg")
        session.mark_pending("00-15", "data:one")
        assert session.known_keys() == ["00-15", "00-30", "100-00"]

    def test_reset_markers(self, session):
        session.last_bucket = 30
        session.user_buckets.add(30)
        session.requested_buckets.add(45)
        session.fired_keyframes.add("00:32")
        session.mark_available("00-15", "/a.jpg")

        session.reset_markers()

        assert session.last_bucket is None
        assert not session.user_buckets
        assert not session.requested_buckets
        assert not session.fired_keyframes
        assert session.is_available("00-15")


class TestPlaceholderCache:
    def test_version_bumps_on_every_set(self):
        cache = PlaceholderCache()
        assert cache.version("00-15") == 0
        first = cache.set("00-15", "data:one")
        second = cache.set("00-15", "data:one")
        assert second > first > 0
        assert cache.get("00-15").data_uri == "data:one"

    def test_clear_and_reset(self):
        cache = PlaceholderCache()
        cache.set("00-15", "data:one")
        cache.set("00-30", "data:two")
        cache.clear("00-15")
        assert cache.keys() == {"00-30"}
        cache.reset()
        assert len(cache) == 0

    def test_next_version_is_strictly_increasing(self):
        far_future = next_version() + 10_000_000
        assert next_version(far_future) == far_future + 1


class TestImagery:
    def test_capture_frame_is_square_jpeg(self, frame):
        data = capture_frame(frame, size=256)
        image = Image.open(io.BytesIO(data))
        assert image.format == "JPEG"
        assert image.size == (256, 256)

    def test_placeholder_is_darkened_data_uri(self, frame):
        uri = make_placeholder(frame, size=64)
        assert uri.startswith("data:image/jpeg;base64,")

        image = Image.open(io.BytesIO(base64.b64decode(uri.split(",", 1)[1])))
        assert image.size == (64, 64)
        r, g, b = image.convert("RGB").getpixel((32, 32))
        assert r < 150 and g < 100

    def test_rgba_frames_are_accepted(self):
        data = capture_frame(Image.new("RGBA", (640, 480), (0, 0, 0, 0)), size=128)
        assert data[:2] == b"\xff\xd8"
