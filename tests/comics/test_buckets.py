import pytest

from comics import buckets
from comics.contracts import PanelIdentity, StatusResponse


@pytest.mark.parametrize(
    "seconds,key",
    [(0, "00-00"), (14.99, "00-00"), (15, "00-15"), (75.4, "01-15"), (599, "09-45"), (-3, "00-00"), (6000, "100-00")],
)
def test_to_key(seconds, key):
    assert buckets.to_key(seconds) == key


def test_next_bucket_key_is_strictly_after():
    assert buckets.next_bucket_key(0) == "00-15"
    assert buckets.next_bucket_key(14.2) == "00-15"
    assert buckets.next_bucket_key(15) == "00-30"


@pytest.mark.parametrize(
    "text,key",
    [("01-15", "01-15"), ("1:15", "01-15"), (" 02:30 ", "02-30"), ("120-00", "120-00")],
)
def test_parse_accepts_both_separators(text, key):
    assert buckets.parse(text) == key


@pytest.mark.parametrize("text", ["", None, "abc", "1-5", "01-75", "01.15", "1234-00", "-01-15"])
def test_parse_rejects(text):
    assert buckets.parse(text) is None


def test_parse_does_not_bucket():
    assert buckets.parse("00-07") == "00-07"


def test_to_seconds_roundtrip():
    assert buckets.to_seconds("01-15") == 75
    assert buckets.to_seconds("1:15") is None
    assert buckets.to_seconds("00-61") is None


def test_ordering_past_100_minutes():
    keys = ["100-00", "00-15", "99-45", "01-00"]
    assert buckets.sort_keys(keys) == ["00-15", "01-00", "99-45", "100-00"]
    assert buckets.compare("99-45", "100-00") == -1
    assert buckets.compare("01-00", "01-00") == 0


def test_keys_in_range():
    assert buckets.keys_in_range(45) == ["00-00", "00-15", "00-30", "00-45"]
    assert buckets.keys_in_range(44.9) == ["00-00", "00-15", "00-30"]
    assert buckets.keys_in_range(0) == ["00-00"]


def test_to_display():
    assert buckets.to_display("01-15") == "01:15"


def test_identity_paths():
    identity = PanelIdentity(video="vid", style="noir", bucket="00-30")
    assert identity.object_path == "vid/noir/00-30.jpg"
    assert str(identity) == "vid:noir:00-30"
    assert identity == PanelIdentity(video="vid", style="noir", bucket="00-30")
    assert len({identity, PanelIdentity(video="vid", style="noir", bucket="00-30")}) == 1


def test_status_response_omits_unset_fields():
    assert StatusResponse.generating().to_json() == {"status": "generating"}
    assert StatusResponse.ready("/a.jpg").to_json() == {"status": "ready", "url": "/a.jpg"}
    assert StatusResponse.error("boom").to_json() == {"status": "error", "message": "boom"}
