"""
Template Composer Session — Selection Consistency

At most one node is selected, and a selection always resolves to an
existing node. Deletions that remove the selected node (or its parent)
clear it; deletions that only shift indices are repaired.
"""

from composer.kernel.document import item_at, section_at
from composer.kernel.session import EditSession
from composer.kernel.types import Selection


def assert_selection_resolves(session: EditSession):
    sel = session.selection
    if sel is None:
        return
    if sel.is_section:
        assert section_at(session.template, sel.page_index, sel.section_index) is not None
    else:
        assert item_at(session.template, sel.page_index, sel.section_index, sel.item_index) is not None


class TestSelect:
    def test_select_section_path(self, session):
        session.add_section()
        sid = session.add_section().target_id
        assert session.select(sid) == Selection(0, 1, -1)
        assert session.selected_id == sid

    def test_select_none_clears(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        assert session.select(None) is None
        assert session.selection is None

    def test_select_unknown_clears(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        assert session.select("section-unknown") is None

    def test_select_item(self, every_type_session):
        s = every_type_session
        assert s.select_item(0, 0, 2) == Selection(0, 0, 2)
        assert s.select_item(0, 0, 99) is None

    def test_selecting_never_bumps_revision(self, session):
        sid = session.add_section().target_id
        rev = session.revision
        session.select(sid)
        session.select(None)
        assert session.revision == rev


class TestSelectionAfterMutations:
    def test_added_item_is_selected(self, session):
        r = session.add_item_to_last_section("rating")
        assert session.selected_id == r.target_id
        assert session.selection == Selection(0, 0, 0)

    def test_duplicate_selects_copy(self, session):
        sid = session.add_section().target_id
        r = session.duplicate_section(sid)
        assert session.selected_id == r.target_id
        assert session.selection == Selection(0, 1, -1)

    def test_section_preset_is_selected(self, session):
        session.add_section()
        revision = session.revision
        r = session.add_section_preset("timeline_certification")
        assert session.selected_id == r.target_id
        assert session.selection == Selection(0, 1, -1)
        assert session.revision == revision + 1

    def test_unknown_preset_keeps_selection(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        r = session.add_section_preset("warranty")
        assert not r.applied
        assert session.selected_id == sid
        assert session.last_error == r.error

    def test_delete_selected_section_clears(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        session.delete_section(sid)
        assert session.selection is None

    def test_delete_parent_of_selected_item_clears(self, session):
        session.add_item_to_last_section("text")
        sid = section_at(session.template, 0, 0).id
        session.delete_section(sid)
        assert session.selection is None

    def test_index_shift_repaired(self, session):
        first = session.add_section().target_id
        second = session.add_section().target_id
        session.select(second)
        assert session.selection == Selection(0, 1, -1)
        session.delete_section(first)
        assert session.selection == Selection(0, 0, -1)
        assert session.selected_id == second

    def test_item_index_shift_repaired(self, session):
        session.add_item_to_last_section("text")
        target = session.add_item_to_last_section("date").target_id
        session.delete_item(0, 0)
        assert session.selected_id == target
        assert session.selection == Selection(0, 0, 0)

    def test_add_page_clears_and_moves(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        session.add_page()
        assert session.selection is None
        assert session.current_page_index == 1

    def test_delete_page_clamps_current_page(self, session):
        session.add_page()
        assert session.current_page_index == 1
        session.delete_page(1)
        assert session.current_page_index == 0

    def test_rejected_mutation_keeps_selection(self, session):
        sid = session.add_section().target_id
        session.select(sid)
        rev = session.revision
        r = session.update_section(sid, {"bogus": 1})
        assert not r.applied
        assert session.selected_id == sid
        assert session.revision == rev
        assert session.last_error.startswith("UNKNOWN_FIELD")

    def test_random_edit_sequence_keeps_selection_valid(self, every_type_session):
        s = every_type_session
        sid = section_at(s.template, 0, 0).id
        steps = [
            lambda: s.duplicate_section(sid),
            lambda: s.select_item(0, 1, 3),
            lambda: s.delete_item(0, 3, page_index=0),
            lambda: s.duplicate_item(1, 0),
            lambda: s.delete_section(sid),
            lambda: s.add_page(),
            lambda: s.set_current_page(0),
            lambda: s.add_item_to_last_section("image"),
            lambda: s.delete_page(1),
        ]
        for step in steps:
            step()
            assert_selection_resolves(s)


class TestNavigation:
    def test_set_current_page_bounds(self, session):
        session.add_page()
        assert session.set_current_page(0)
        assert not session.set_current_page(2)
        assert session.current_page_index == 0

    def test_operations_default_to_current_page(self, session):
        session.add_page()
        session.add_item_to_last_section("text")
        assert session.template.pages[session.template.page_ids[0]].section_ids == ()
        assert len(session.template.pages[session.template.page_ids[1]].section_ids) == 1
