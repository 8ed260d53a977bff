"""
Pagesmith Sync — direct manipulation.

Canvas and properties-panel edits patch the model and regenerate the
derived views synchronously. Nothing is decoded on this path.
"""

import pytest

from engine.kernel.model import find_element
from engine.kernel.types import DEFAULT_ELEMENT_STYLE, EditOrigin, SyncState


class TestMove:
    def test_drag_updates_only_the_dragged_element(self, controller):
        assert controller.move("e1", 10, 5)

        assert find_element(controller.document, "e1").style == {
            "position": "absolute",
            "left": "60px",
            "top": "55px",
        }
        assert find_element(controller.document, "e2").style == DEFAULT_ELEMENT_STYLE

    def test_drag_regenerates_stylesheet_and_component(self, controller):
        markup_before = controller.views["markup"]
        controller.move("e1", 10, 5)

        assert "#e1 { position: absolute; left: 60px; top: 55px; }" in controller.views["stylesheet"]
        assert "#e2 { position: absolute; left: 50px; top: 50px; }" in controller.views["stylesheet"]
        assert 'left: "60px"' in controller.views["component_source"]
        assert controller.views["markup"] == markup_before

    def test_update_names_origin_and_changed_views_only(self, controller):
        controller.move("e1", 10, 5)

        [update] = controller.updates
        assert update.origin is EditOrigin.CANVAS
        assert set(update.views) == {"stylesheet", "component_source"}

    def test_state_returns_to_idle(self, controller):
        controller.move("e1", 1, 1)
        assert controller.state is SyncState.IDLE

    def test_unknown_element_is_a_notice_not_an_exception(self, controller):
        assert not controller.move("nope", 1, 1)
        assert controller.notices[-1].kind == "internal"
        assert controller.updates == []

    def test_resize_from_missing_size(self, controller):
        controller.apply_style_delta("e2", {"width": "100px"})
        controller.resize("e2", 20, 30)
        style = find_element(controller.document, "e2").style
        assert style["width"] == "120px"
        assert style["height"] == "30px"


class TestStyleEdits:
    def test_style_delta_merges(self, controller):
        controller.apply_style_delta("e1", {"color": "red", "top": None})
        assert find_element(controller.document, "e1").style == {
            "position": "absolute",
            "left": "50px",
            "color": "red",
        }

    def test_properties_panel_origin(self, controller):
        controller.set_style_property("e1", "color", "blue")
        assert controller.updates[-1].origin is EditOrigin.PROPERTIES
        assert "color: blue;" in controller.views["stylesheet"]


class TestStructureEdits:
    def test_add_heading(self, controller):
        markup_before = controller.views["markup"]
        element = controller.add_element("h1", text="Heading")

        assert element.id == "element-n1"
        assert element.style == DEFAULT_ELEMENT_STYLE
        assert [e.id for e in controller.document.elements] == ["e1", "e2", "element-n1"]
        assert controller.views["markup"] == markup_before + '\n<h1 id="element-n1">Heading</h1>'
        assert "#element-n1 { position: absolute; left: 50px; top: 50px; }" in controller.views["stylesheet"]

    def test_add_keeps_user_formatting(self, controller):
        controller.edit_markup('<h1 id="e1">Hello</h1>\n\n   <img id="e2" src="cat.png">')
        controller.add_element("p", text="x")
        assert controller.views["markup"].startswith('<h1 id="e1">Hello</h1>\n\n   <img id="e2" src="cat.png">\n')

    def test_add_splits_reserved_attributes(self, controller):
        element = controller.add_element("div", attributes={"class": "card", "id": "ignored", "title": "t"})
        assert element.class_name == "card"
        assert element.attributes == {"title": "t"}
        assert element.id != "ignored"

    def test_add_void_ignores_text(self, controller):
        element = controller.add_element("img", text="nope", attributes={"src": "a.png"})
        assert element.text is None
        assert controller.views["markup"].endswith('<img id="element-n1" src="a.png" />')

    @pytest.mark.parametrize("tag", ["", "   ", "h1 onclick", "1h", "my_tag", "<p>"])
    def test_add_with_invalid_tag_is_a_notice(self, controller, tag):
        before = controller.document.to_dict()
        markup_before = controller.views["markup"]

        assert controller.add_element(tag, text="x") is None

        assert controller.document.to_dict() == before
        assert controller.views["markup"] == markup_before
        assert controller.updates == []
        notice = controller.notices[-1]
        assert notice.kind == "internal"
        assert notice.origin is EditOrigin.CANVAS

    def test_add_custom_element_tag(self, controller):
        element = controller.add_element("My-Widget")
        assert element.tag == "my-widget"

    def test_remove_prunes_style_and_markup(self, controller):
        controller.select("e1")
        assert controller.remove_element("e1")

        assert "e1" not in controller.views["markup"]
        assert "#e1" not in controller.views["stylesheet"]
        assert controller.selected is None

    def test_set_text(self, controller):
        controller.set_text("e1", "Goodbye")
        assert '<h1 id="e1">Goodbye</h1>' in controller.views["markup"]

    def test_set_text_on_void_is_rejected(self, controller):
        assert not controller.set_text("e2", "x")
        assert controller.notices[-1].kind == "internal"

    def test_set_image_src(self, controller):
        controller.set_image_src("e2", "dog.png")
        assert '<img id="e2" src="dog.png" />' in controller.views["markup"]

    def test_set_image_src_on_heading_is_rejected(self, controller):
        assert not controller.set_image_src("e1", "dog.png")
        assert "dog.png" not in controller.views["markup"]


class TestSelect:
    def test_select_returns_copy(self, controller):
        element = controller.select("e1")
        element.style["left"] = "999px"
        assert controller.selected == "e1"
        assert find_element(controller.document, "e1").style["left"] == "50px"

    def test_select_unknown(self, controller):
        assert controller.select("nope") is None
        assert controller.notices[-1].details == {"id": "nope"}

    def test_clear_selection(self, controller):
        controller.select("e1")
        controller.select(None)
        assert controller.selected is None


class TestFeedbackLoop:
    def test_listener_echo_is_ignored(self, controller):
        echoes = []

        def echo(update):
            echoes.append(controller.state)
            controller.edit_markup("<p>echo</p>")

        controller.subscribe(echo)
        controller.move("e1", 1, 1)

        assert echoes == [SyncState.APPLYING_DIRECT_MANIPULATION]
        assert "echo" not in controller.views["markup"]
        assert [e.id for e in controller.document.elements] == ["e1", "e2"]

    def test_regenerated_text_fed_back_is_a_no_op(self, controller):
        controller.move("e1", 1, 1)
        controller.updates.clear()

        controller.edit_stylesheet(controller.views["stylesheet"])

        assert controller.updates == []
        assert controller.pending() == []
        assert controller.notices == []
