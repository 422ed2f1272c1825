"""
Tests for the link path edit session.

The session is driven the way the map host drives it: one discrete event at a
time, checking both the resulting state and what landed in the store.
"""

import pytest

from mapnet.models import LinkStyle
from mapnet.edit import EditEvent, EditMode, EditState, EventKind


@pytest.fixture
def editing(session, custom_link):
    session.begin_edit(custom_link)
    return custom_link


def _waypoints(store, key):
    return store.get_link(*key).waypoints


class TestBeginEdit:

    def test_curved_link_becomes_curvy_custom_with_seeded_points(self, store, session, two_devices):
        a, b = two_devices
        store.add_link(a, b)
        store.set_link_style(a, b, LinkStyle.CURVED)

        state = session.begin_edit((a, b))

        assert state == EditState(mode=EditMode.EDITING, link=(a, b))
        link = store.get_link(a, b)
        assert link.style == LinkStyle.CUSTOM
        assert link.curvy is True
        assert link.waypoints
        # A = (0, 0), B = (0, 10): the arc bows toward negative latitude
        for lat, lng in link.waypoints:
            assert lat < 0.0
            assert 0.0 < lng < 10.0

    def test_straight_link_becomes_polyline_custom(self, store, session, two_devices):
        a, b = two_devices
        store.add_link(a, b)

        session.begin_edit((a, b))

        link = store.get_link(a, b)
        assert link.style == LinkStyle.CUSTOM
        assert link.curvy is False
        assert link.waypoints == []
        assert session.state.is_editing

    def test_custom_link_is_left_untouched(self, store, session, custom_link):
        store.set_link_waypoints(*custom_link, [(1.0, 5.0)])
        store.set_link_curvy(*custom_link, True)

        session.begin_edit(custom_link)

        link = store.get_link(*custom_link)
        assert link.style == LinkStyle.CUSTOM
        assert link.curvy is True
        assert link.waypoints == [(1.0, 5.0)]

    def test_missing_link_is_ignored(self, session):
        assert session.begin_edit(("x", "y")) == EditState()

    def test_dangling_link_is_ignored(self, store, session, two_devices):
        a, _ = two_devices
        store.add_link(a, "ghost")
        assert session.begin_edit((a, "ghost")) == EditState()
        assert store.get_link(a, "ghost").style == LinkStyle.STRAIGHT

    def test_second_link_cannot_start_while_editing(self, store, session, editing, place_device):
        c = place_device(5.0, 5.0)
        store.add_link(editing[0], c)

        state = session.begin_edit((editing[0], c))

        assert state.link == editing
        assert store.get_link(editing[0], c).style == LinkStyle.STRAIGHT


class TestPathEvents:

    def test_click_inserts_waypoint(self, store, session, editing):
        state = session.path_click(editing, (1.0, 4.0))
        assert state.mode == EditMode.EDITING
        assert _waypoints(store, editing) == [(1.0, 4.0)]

    def test_click_inserts_between_the_right_control_points(self, store, session, editing):
        store.set_link_waypoints(*editing, [(0.0, 3.0), (0.0, 7.0)])
        # Control points A(0,0) W0(0,3) W1(0,7) B(0,10); (0.5, 5) is nearest segment 1
        session.path_click(editing, (0.5, 5.0))
        assert _waypoints(store, editing) == [(0.0, 3.0), (0.5, 5.0), (0.0, 7.0)]

    def test_click_near_b_becomes_last_waypoint(self, store, session, editing):
        store.set_link_waypoints(*editing, [(0.0, 3.0)])
        session.path_click(editing, (0.2, 9.0))
        assert _waypoints(store, editing) == [(0.0, 3.0), (0.2, 9.0)]

    def test_press_move_release(self, store, session, editing):
        store.set_link_waypoints(*editing, [(0.0, 6.0)])

        state = session.path_press(editing, (0.5, 2.0))
        assert state == EditState(mode=EditMode.DRAGGING, link=editing, dragging_index=0)
        assert _waypoints(store, editing) == [(0.5, 2.0), (0.0, 6.0)]

        session.move((1.5, 2.5))
        assert _waypoints(store, editing) == [(1.5, 2.5), (0.0, 6.0)]

        state = session.release()
        assert state == EditState(mode=EditMode.EDITING, link=editing)
        assert _waypoints(store, editing) == [(1.5, 2.5), (0.0, 6.0)]

    def test_click_on_other_link_is_ignored(self, store, session, editing, place_device):
        c = place_device(5.0, 5.0)
        store.add_link(editing[0], c)
        store.set_link_style(editing[0], c, LinkStyle.CUSTOM)

        session.path_click((editing[0], c), (1.0, 1.0))

        assert store.get_link(editing[0], c).waypoints == []

    def test_click_while_idle_is_ignored(self, store, session, custom_link):
        session.path_click(custom_link, (1.0, 1.0))
        assert _waypoints(store, custom_link) == []

    def test_press_while_dragging_is_ignored(self, store, session, editing):
        session.path_press(editing, (0.5, 2.0))
        session.path_press(editing, (0.5, 8.0))
        assert _waypoints(store, editing) == [(0.5, 2.0)]
        assert session.state.dragging_index == 0

    def test_move_and_release_without_drag_do_nothing(self, store, session, editing):
        store.set_link_waypoints(*editing, [(0.0, 5.0)])
        assert session.move((9.0, 9.0)) == EditState(mode=EditMode.EDITING, link=editing)
        assert session.release() == EditState(mode=EditMode.EDITING, link=editing)
        assert _waypoints(store, editing) == [(0.0, 5.0)]


class TestHandles:

    @pytest.fixture
    def three_points(self, store, editing):
        store.set_link_waypoints(*editing, [(1.0, 2.0), (2.0, 5.0), (1.0, 8.0)])
        return editing

    def test_drag_handle(self, store, session, three_points):
        state = session.drag_start(three_points, 1)
        assert state == EditState(mode=EditMode.DRAGGING, link=three_points, dragging_index=1)

        session.drag_move(three_points, 1, (3.0, 5.0))
        assert _waypoints(store, three_points)[1] == (3.0, 5.0)

        state = session.drag_end(three_points, 1, (4.0, 5.5))
        assert state == EditState(mode=EditMode.EDITING, link=three_points)
        assert _waypoints(store, three_points) == [(1.0, 2.0), (4.0, 5.5), (1.0, 8.0)]

    def test_drag_start_out_of_range_is_ignored(self, session, three_points):
        assert not session.drag_start(three_points, 3).is_dragging
        assert not session.drag_start(three_points, -1).is_dragging

    def test_drag_move_for_other_index_is_ignored(self, store, session, three_points):
        session.drag_start(three_points, 0)
        session.drag_move(three_points, 2, (9.0, 9.0))
        assert _waypoints(store, three_points)[2] == (1.0, 8.0)

    def test_drag_events_without_edit_are_ignored(self, store, session, custom_link):
        store.set_link_waypoints(*custom_link, [(1.0, 2.0)])

        assert session.drag_start(custom_link, 0) == EditState()
        session.drag_move(custom_link, 0, (5.0, 5.0))
        session.drag_end(custom_link, 0, (5.0, 5.0))

        assert _waypoints(store, custom_link) == [(1.0, 2.0)]

    def test_alt_click_removes_handle(self, store, session, three_points):
        state = session.delete_handle(three_points, 1)
        assert state == EditState(mode=EditMode.EDITING, link=three_points)
        assert _waypoints(store, three_points) == [(1.0, 2.0), (1.0, 8.0)]

        # Indices are contiguous again: the old index 2 is now 1
        session.drag_start(three_points, 1)
        session.drag_end(three_points, 1, (0.0, 9.0))
        assert _waypoints(store, three_points) == [(1.0, 2.0), (0.0, 9.0)]

    def test_alt_click_out_of_range_is_ignored(self, store, session, three_points):
        session.delete_handle(three_points, 7)
        assert len(_waypoints(store, three_points)) == 3

    def test_clear_waypoints(self, store, session, three_points):
        session.clear_waypoints(three_points)
        assert _waypoints(store, three_points) == []
        assert session.state.is_editing


class TestLeavingEditMode:

    def test_cancel_keeps_edits(self, store, session, editing):
        session.path_click(editing, (1.0, 4.0))
        assert session.cancel() == EditState()
        link = store.get_link(*editing)
        assert link.style == LinkStyle.CUSTOM
        assert link.waypoints == [(1.0, 4.0)]

    def test_cancel_while_dragging(self, session, editing):
        session.path_press(editing, (1.0, 4.0))
        assert session.cancel() == EditState()

    def test_escape_key_cancels(self, session, editing):
        assert session.handle_key("Escape") == EditState()

    def test_background_right_click_cancels(self, session, editing):
        assert session.background_context_menu() == EditState()

    def test_removing_an_endpoint_device_forces_idle(self, store, session, editing):
        store.remove_device(editing[0])
        assert session.state == EditState()
        assert store.list_links() == []

    def test_removing_the_link_forces_idle(self, store, session, editing):
        store.remove_link(*editing)
        assert session.state == EditState()

    def test_removing_an_unrelated_link_keeps_editing(self, store, session, editing, place_device):
        c = place_device(5.0, 5.0)
        store.add_link(c, editing[1])
        store.remove_link(c, editing[1])
        assert session.state.link == editing

    def test_delete_key_removes_selected_device(self, store, session, editing):
        state = session.handle_key("Delete", selected_device_id=editing[1])
        assert state == EditState()
        assert store.get_device(editing[1]) is None

    def test_delete_key_without_selection_is_noop(self, store, session, editing):
        session.handle_key("Backspace")
        assert len(store.list_devices()) == 2
        assert session.state.link == editing

    @pytest.mark.parametrize("style,curvy", [
        (LinkStyle.STRAIGHT, False),
        (LinkStyle.CURVED, True),
    ])
    def test_selecting_non_custom_style_exits_and_clears(self, store, session, editing, style, curvy):
        session.path_click(editing, (1.0, 4.0))

        assert session.select_style(editing, style) == EditState()

        link = store.get_link(*editing)
        assert link.style == style
        assert link.waypoints == []
        assert link.curvy is curvy

    def test_direct_store_restyle_exits(self, store, session, editing):
        store.set_link_style(*editing, LinkStyle.STRAIGHT)
        assert session.state == EditState()

    def test_waypoint_events_on_restyled_link_are_ignored(self, store, session, editing):
        session.drag_start(editing, 0)
        store.set_link_style(*editing, LinkStyle.CURVED)
        session.path_click(editing, (1.0, 1.0))
        assert _waypoints(store, editing) == []


class TestSelectStyle:

    def test_custom_from_curved_seeds_without_editing(self, store, session, two_devices):
        a, b = two_devices
        store.add_link(a, b)
        store.set_link_style(a, b, LinkStyle.CURVED)

        state = session.select_style((a, b), LinkStyle.CUSTOM)

        assert state == EditState()
        link = store.get_link(a, b)
        assert link.style == LinkStyle.CUSTOM
        assert link.curvy is True
        assert len(link.waypoints) == 12

    def test_custom_from_straight_keeps_curvy_flag(self, store, session, two_devices):
        a, b = two_devices
        store.add_link(a, b)
        store.set_link_curvy(a, b, True)

        session.select_style((a, b), "custom")

        link = store.get_link(a, b)
        assert link.style == LinkStyle.CUSTOM
        assert link.curvy is True
        assert link.waypoints == []

    def test_invalid_style_is_ignored(self, store, session, custom_link):
        session.select_style(custom_link, "wavy")
        assert store.get_link(*custom_link).style == LinkStyle.CUSTOM


class TestDispatch:

    def test_full_gesture_through_events(self, store, session, custom_link):
        session.dispatch(EditEvent(EventKind.BEGIN_EDIT, link=custom_link))
        session.dispatch(EditEvent(EventKind.PATH_PRESS, link=custom_link, point=(0.5, 1.0)))
        session.dispatch(EditEvent(EventKind.MOVE, point=(2.0, 2.0)))
        state = session.dispatch(EditEvent(EventKind.RELEASE))

        assert state == EditState(mode=EditMode.EDITING, link=custom_link)
        assert _waypoints(store, custom_link) == [(2.0, 2.0)]

        session.dispatch(EditEvent(EventKind.DELETE_HANDLE, link=custom_link, index=0))
        assert _waypoints(store, custom_link) == []

        state = session.dispatch(EditEvent(EventKind.KEY, key="Escape"))
        assert state == EditState()

    def test_string_kinds_are_accepted(self, session, custom_link):
        state = session.dispatch(EditEvent("begin_edit", link=list(custom_link)))
        assert state.link == custom_link

    def test_unknown_kind_is_ignored(self, session):
        assert session.dispatch(EditEvent("teleport")) == EditState()

    def test_events_missing_payload_are_ignored(self, session, editing):
        assert session.dispatch(EditEvent(EventKind.PATH_CLICK, link=editing)).is_editing
        assert session.dispatch(EditEvent(EventKind.DRAG_START, link=editing, index=None)).mode == EditMode.EDITING

    def test_drag_end_without_point_releases(self, store, session, custom_link):
        store.set_link_waypoints(*custom_link, [(1.0, 5.0)])
        session.begin_edit(custom_link)
        session.drag_start(custom_link, 0)
        session.drag_move(custom_link, 0, (2.0, 5.0))

        wrong = session.dispatch(EditEvent(EventKind.DRAG_END, link=custom_link, index=3))
        assert wrong.is_dragging

        state = session.dispatch(EditEvent(EventKind.DRAG_END, link=custom_link, index=0))
        assert state == EditState(mode=EditMode.EDITING, link=custom_link)
        assert _waypoints(store, custom_link) == [(2.0, 5.0)]


def test_state_change_callback(session, custom_link):
    seen = []
    session.set_on_state_change(seen.append)

    session.begin_edit(custom_link)
    session.path_press(custom_link, (0.5, 5.0))
    session.move((1.0, 5.0))
    session.release()
    session.cancel()

    assert [s.mode for s in seen] == [
        EditMode.EDITING, EditMode.DRAGGING, EditMode.EDITING, EditMode.IDLE,
    ]


def test_edited_path_and_hit_check(session, editing):
    assert session.edited_path() == [(0.0, 0.0), (0.0, 10.0)]
    assert session.is_on_edited_path((0.2, 5.0), tolerance=0.5)
    assert not session.is_on_edited_path((3.0, 5.0), tolerance=0.5)
    session.cancel()
    assert session.edited_path() == []
