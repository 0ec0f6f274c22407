import pytest

from comics import buckets
from comics.client.session import PanelSession
from comics.client.window import compute_window, diff_strip, render_strip


def keys_until(seconds: int) -> list[str]:
    return [k for k in buckets.keys_in_range(seconds) if k != "00-00"]


class TestComputeWindow:
    def test_nothing_known(self):
        window = compute_window(42, [])
        assert window.keys == ()
        assert window.slots(6) == (None,) * 6

    def test_bootstrap_left_aligns_from_start(self):
        window = compute_window(10, ["00-30", "00-15"])
        assert window.left_aligned
        assert window.keys == ("00-15", "00-30")
        assert window.slots(6) == ("00-15", "00-30", None, None, None, None)

    def test_window_ends_at_next_boundary(self):
        window = compute_window(125, keys_until(180))
        assert not window.left_aligned
        assert window.keys == ("01-00", "01-15", "01-30", "01-45", "02-00", "02-15")

    def test_never_more_than_six(self):
        for t in range(0, 600, 7):
            assert len(compute_window(t, keys_until(600)).keys) <= 6

    def test_gaps_shrink_the_window(self):
        window = compute_window(170, ["02-00", "02-30", "03-00"])
        assert not window.left_aligned
        assert window.keys == ("02-00", "02-30", "03-00")
        assert window.slots(6) == (None, None, None, "02-00", "02-30", "03-00")

    def test_unknown_target_anchors_on_latest_earlier_key(self):
        window = compute_window(300, ["00-15", "04-30", "06-00", "06-15"])
        assert window.keys == ("00-15", "04-30")
        assert not window.left_aligned

    def test_bootstrap_applies_when_early_anchor_is_short(self):
        window = compute_window(100, ["00-15", "00-30", "05-00"])
        assert window.left_aligned
        assert window.keys == ("00-15", "00-30", "05-00")

    def test_falls_back_to_latest_known_key(self):
        window = compute_window(10, ["05-00", "05-15"])
        assert not window.left_aligned
        assert window.keys == ("05-00", "05-15")

    def test_bootstrap_threshold_is_configurable(self):
        known = ["00-15", "00-30"]
        assert compute_window(20, known, bootstrap_threshold="00-00").left_aligned is False
        assert compute_window(20, known, bootstrap_threshold="01-30").left_aligned is True

    def test_window_size_is_configurable(self):
        window = compute_window(125, keys_until(180), size=3)
        assert window.keys == ("01-45", "02-00", "02-15")


@pytest.fixture
def session():
    return PanelSession(video="vid", style="noir")


class TestRenderStrip:
    def test_available_and_pending_slots(self, session):
        session.mark_available("00-15", "/v1/files/vid/noir/00-15.jpg")
        session.mark_pending("00-30", "data:image/jpeg;base64,AAAA")

        view = render_strip(session, 20)

        assert view.visible
        assert view.highlighted == "00-15"
        first, second = view.slots[0], view.slots[1]
        assert first.label == "00:15"
        assert first.image.startswith("/v1/files/vid/noir/00-15.jpg?v=")
        assert not first.is_placeholder
        assert second.is_placeholder
        assert second.image == "data:image/jpeg;base64,AAAA"
        assert view.slots[2:] == (None, None, None, None)

    def test_highlight_is_the_playing_bucket(self, session):
        session.mark_available("00-15", "/a.jpg")
        assert render_strip(session, 3).highlighted == "00-00"
        assert render_strip(session, 16).highlighted == "00-15"


class TestDiffStrip:
    def test_first_render_changes_everything(self, session):
        session.mark_available("00-15", "/a.jpg")
        diff = diff_strip(None, render_strip(session, 5))
        assert diff.changed_slots == tuple(range(6))
        assert diff.highlight_changed

    def test_identical_views_are_unchanged(self, session):
        session.mark_available("00-15", "/a.jpg")
        assert diff_strip(render_strip(session, 5), render_strip(session, 6)).unchanged

    def test_only_highlight_moves(self, session):
        session.mark_available("00-15", "/a.jpg")
        session.mark_available("00-30", "/b.jpg")
        diff = diff_strip(render_strip(session, 5), render_strip(session, 16))
        assert diff.changed_slots == ()
        assert diff.highlight_changed

    def test_placeholder_version_redraws_one_slot(self, session):
        session.mark_available("00-15", "/a.jpg")
        session.mark_pending("00-30", "data:one")
        before = render_strip(session, 5)
        session.mark_pending("00-30", "data:two")
        diff = diff_strip(before, render_strip(session, 5))
        assert diff.changed_slots == (1,)
        assert not diff.highlight_changed

    def test_placeholder_becoming_available_redraws_one_slot(self, session):
        session.mark_available("00-15", "/a.jpg")
        session.mark_pending("00-30", "data:one")
        before = render_strip(session, 5)
        session.mark_available("00-30", "/b.jpg")
        diff = diff_strip(before, render_strip(session, 5))
        assert diff.changed_slots == (1,)
