"""
Pagesmith Sync — debounced text edits.

Editor text lands in its view at once and is decoded after the quiet
window. Failures keep the previous Document and leave the text in place.
"""

import asyncio

import pytest

from engine.kernel import style_codec
from engine.kernel.model import find_element
from engine.kernel.types import EditOrigin

QUIET_WINDOW = 0.05


class TestDebounce:
    async def test_edit_is_held_until_the_window_closes(self, controller):
        controller.edit_markup('<h1 id="e1">Changed</h1>')

        assert controller.views["markup"] == '<h1 id="e1">Changed</h1>'
        assert find_element(controller.document, "e1").text == "Hello"
        assert controller.pending() == ["markup"]

        await asyncio.sleep(QUIET_WINDOW * 4)
        await controller.drain()

        assert find_element(controller.document, "e1").text == "Changed"
        assert controller.pending() == []

    async def test_two_rapid_edits_decode_once_with_the_second_text(self, controller, monkeypatch):
        calls = []

        def recording_decode(text):
            calls.append(text)
            return style_codec.decode_styles(text)

        monkeypatch.setattr("engine.kernel.sync.decode_styles", recording_decode)

        controller.edit_stylesheet("#e1 { color: red; }")
        controller.edit_stylesheet("#e1 { color: blue; }")
        await asyncio.sleep(QUIET_WINDOW * 4)
        await controller.drain()

        assert calls == ["#e1 { color: blue; }"]
        assert find_element(controller.document, "e1").style == {"color": "blue"}

    async def test_flush_applies_now(self, controller):
        controller.edit_markup('<h1 id="e1">Now</h1>')
        await controller.flush()
        assert find_element(controller.document, "e1").text == "Now"

    async def test_flush_applies_markup_before_stylesheet(self, controller):
        controller.edit_stylesheet("#fresh { color: red; }")
        controller.edit_markup('<p id="fresh">new</p>')
        await controller.flush()
        assert find_element(controller.document, "fresh").style == {"color": "red"}

    async def test_reverting_to_applied_text_cancels_pending(self, controller):
        original = controller.views["markup"]
        controller.edit_markup("<p>typing</p>")
        controller.edit_markup(original)
        assert controller.pending() == []


class TestMarkupEdits:
    def test_markup_edit_regenerates_stylesheet_not_markup(self, controller):
        controller.edit_markup('<h1 id="e1">Hello</h1>\n<p>new</p>')

        [update] = controller.updates
        assert update.origin is EditOrigin.MARKUP
        assert "markup" not in update.views
        assert "#element-n1 { position: absolute; left: 50px; top: 50px; }" in update.views["stylesheet"]
        assert "#e2" not in update.views["stylesheet"]

    def test_known_id_keeps_dragged_position(self, controller):
        controller.move("e1", 10, 5)
        controller.edit_markup('<h2 id="e1">Retagged</h2>')

        element = find_element(controller.document, "e1")
        assert element.tag == "h2"
        assert element.style["left"] == "60px"

    def test_parse_error_keeps_document_and_text(self, controller):
        before = controller.document.to_dict()
        controller.edit_markup('<h1 id="e1">Hi</h1>\n<div')

        assert controller.document.to_dict() == before
        assert controller.views["markup"] == '<h1 id="e1">Hi</h1>\n<div'
        notice = controller.notices[-1]
        assert notice.kind == "parse_error"
        assert notice.origin is EditOrigin.MARKUP
        assert controller.updates == []

    def test_duplicate_ids_become_notices(self, controller):
        controller.edit_markup('<p id="x">1</p><p id="x">2</p>')
        assert [n.kind for n in controller.notices] == ["identity_conflict"]
        assert [e.id for e in controller.document.elements] == ["x", "element-n1"]


class TestStylesheetEdits:
    def test_ids_are_stable_under_stylesheet_edits(self, controller):
        markup_before = controller.views["markup"]
        controller.edit_stylesheet("#e1 { color: red; }")

        assert [e.id for e in controller.document.elements] == ["e1", "e2"]
        assert find_element(controller.document, "e1").style == {"color": "red"}
        assert find_element(controller.document, "e2").style == {}
        assert controller.views["markup"] == markup_before

    def test_deleted_rule_stays_deleted_after_a_drag(self, controller):
        controller.edit_stylesheet("#e1 { position: absolute; left: 50px; top: 50px; }")
        controller.move("e1", 1, 0)

        assert find_element(controller.document, "e2").style == {}
        assert "#e2" not in controller.views["stylesheet"]
        assert controller.views["stylesheet"].startswith("#e1 {")
        assert "51px" in controller.views["stylesheet"]

    def test_unterminated_rule_retains_document(self, controller):
        before = controller.document.to_dict()
        controller.edit_stylesheet("h1 { color: red")

        assert controller.document.to_dict() == before
        assert controller.views["stylesheet"] == "h1 { color: red"
        assert controller.notices == []

    def test_stylesheet_edit_regenerates_component_only(self, controller):
        controller.edit_stylesheet("#e1 { color: red; }")
        [update] = controller.updates
        assert set(update.views) == {"component_source"}
        assert 'color: "red"' in update.views["component_source"]

    def test_non_id_rules_survive(self, controller):
        controller.edit_stylesheet("h1 { font-size: 40px; }\n#e1 { color: red; }")
        controller.move("e1", 1, 0)
        assert controller.views["stylesheet"].startswith("h1 { font-size: 40px; }\n#e1 {")


class TestScriptAndComponentEdits:
    def test_script_edit_updates_model_only(self, controller):
        controller.edit_script("console.log(1);")
        assert controller.document.script == "console.log(1);"
        assert controller.updates == []

    def test_edit_by_view_name(self, controller):
        controller.edit("component_css", ".x { color: red; }")
        assert controller.document.component_css == ".x { color: red; }"

    @pytest.mark.parametrize("view", ["canvas", "properties", "nonsense"])
    def test_edit_of_a_non_text_view_is_a_notice(self, controller, view):
        before = controller.document.to_dict()
        controller.edit(view, "x")

        assert controller.document.to_dict() == before
        assert controller.pending() == []
        notice = controller.notices[-1]
        assert notice.kind == "internal"
        assert notice.message == f"{view} is not a text view"
        assert notice.details == {"view": view}

    def test_edit_accepts_an_origin(self, controller):
        controller.edit(EditOrigin.SCRIPT, "go();")
        assert controller.document.script == "go();"


class TestSupersede:
    async def test_drag_is_folded_into_pending_stylesheet_edit(self, controller):
        controller.edit_stylesheet(
            "#e1 { position: absolute; left: 50px; top: 50px; color: red; }\n"
            "#e2 { position: absolute; left: 50px; top: 50px; color: blue; }"
        )
        controller.move("e1", 10, 5)

        assert controller.pending() == ["stylesheet"]
        assert "left: 60px" in controller.views["stylesheet"]
        assert "color: blue" in controller.views["stylesheet"]

        await controller.flush()

        e1 = find_element(controller.document, "e1").style
        assert e1["left"] == "60px"
        assert e1["top"] == "55px"
        assert e1["color"] == "red"
        assert find_element(controller.document, "e2").style["color"] == "blue"

    async def test_set_text_is_folded_into_pending_markup_edit(self, controller):
        controller.edit_markup('<h1 id="e1">Hello</h1>\n<img id="e2" src="cat.png" />\n<p id="typed">new para</p>')
        assert controller.set_text("e1", "Changed")

        assert controller.pending() == ["markup"]
        assert '<p id="typed">new para</p>' in controller.views["markup"]
        assert '<h1 id="e1">Changed</h1>' in controller.views["markup"]

        await controller.flush()

        assert [e.id for e in controller.document.elements] == ["e1", "e2", "typed"]
        assert find_element(controller.document, "e1").text == "Changed"
        assert find_element(controller.document, "typed").text == "new para"

    async def test_pending_edit_that_cannot_take_the_change_is_kept(self, controller):
        typed = '<img id="e2" src="cat.png" />'
        controller.edit_markup(typed)
        assert controller.set_text("e1", "Changed")

        assert controller.views["markup"] == typed
        await controller.flush()
        assert [e.id for e in controller.document.elements] == ["e2"]
        assert controller.notices == []

    async def test_text_edit_leaves_other_pending_edits_alone(self, controller):
        controller.edit_stylesheet("#e1 { color: red; }")
        controller.edit_markup('<h1 id="e1">Hello</h1>')
        await controller.flush()

        assert find_element(controller.document, "e1").style == {"color": "red"}
        assert controller.views["stylesheet"] == "#e1 { color: red; }"

    async def test_add_while_markup_pending_is_decoded_with_it(self, controller):
        controller.edit_markup('<h1 id="e1">Hello</h1>\n<p id="typed">t</p>')
        element = controller.add_element("h2", text="Added")
        await controller.flush()

        ids = [e.id for e in controller.document.elements]
        assert ids == ["e1", "typed", element.id]
