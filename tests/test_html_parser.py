from analyze.html_parser import parse_html, script_listener_bindings
from analyze.parse_file import parse_source
from analyze.types import UIElement

from conftest import read_fixture


def test_contact_form_elements():
    analysis = parse_html(read_fixture("contact.html"), "contact.html")
    assert analysis.framework == "html"
    assert len(analysis.components) == 1
    comp = analysis.components[0]
    assert comp.name == "contact"
    assert comp.type == "form"

    tags = [e.tag for e in comp.elements]
    assert tags == ["form", "input", "input", "button"]
    form, name, email, button = comp.elements
    assert form.form_key == "contact"
    assert name.parent_form_id == "contact"
    assert name.label == "Your name"
    assert name.is_required
    assert email.input_type == "email"
    assert email.label == "Email"
    assert button.label == "Send Message"
    assert button.input_type == "submit"


def test_attributes_are_strings():
    analysis = parse_html('<form><input name="n" required maxlength="5"></form>', "f.html")
    el = analysis.components[0].elements[1]
    assert el.attributes["required"] == "true"
    assert el.attributes["maxlength"] == "5"
    assert "maxLength:5" in el.validation


def test_static_markup_yields_no_components():
    analysis = parse_html(read_fixture("static.html"), "static.html")
    assert analysis.components == []


def test_inline_and_listener_handlers_resolve_to_script_functions():
    comp = parse_html(read_fixture("todo.html"), "todo.html").components[0]
    by_name = {h.name: h for h in comp.handlers}
    assert set(by_name) == {"addTask", "clearCompleted"}
    assert by_name["addTask"].api_calls[0].method == "POST"
    assert by_name["clearCompleted"].api_calls[0].method == "DELETE"

    clear = next(e for e in comp.elements if e.id == "clear")
    assert clear.handlers == {"click": "clearCompleted"}


def test_wrapping_label_and_placeholder_priority():
    src = """
    <label>Phone <input name="phone" type="tel"></label>
    <label for="city">City</label><input id="city" placeholder="e.g. Berlin">
    <button><span>Go</span></button>
    """
    elements = parse_html(src, "x.html").components[0].elements
    phone, city, go = elements
    assert phone.label == "Phone"
    # explicit attributes win over <label for>
    assert city.label == "e.g. Berlin"
    assert go.label == "Go"


def test_input_button_types_become_buttons():
    elements = parse_html('<input type="submit" value="Join now">', "x.html").components[0].elements
    assert elements[0].tag == "button"
    assert elements[0].label == "Join now"


def test_select_options_collected():
    src = "<select name='size'><option value='s'>Small</option><option>Large</option></select>"
    el = parse_html(src, "x.html").components[0].elements[0]
    assert el.options == ["s", "Large"]


def test_trivial_inline_setter_is_dropped():
    src = '<input name="q" onchange="query = event.target.value"><button onclick="run()">Run</button>'
    comp = parse_html(src, "x.html").components[0]
    assert [h.event for h in comp.handlers] == ["click"]
    assert comp.handlers[0].name == "inline_click_handler"


def test_listener_bindings_by_variable():
    script = """
    const btn = document.getElementById('go');
    btn.addEventListener('click', () => { fetch('/api/go', { method: 'POST' }) });
    """
    el = UIElement(tag="button", id="go")
    bindings = script_listener_bindings(script, [el])
    assert len(bindings) == 1
    assert bindings[0].element is el
    assert bindings[0].kind == "click"


def test_parse_source_dispatches_on_extension():
    assert parse_source("<button>Hi</button>", "page.htm").framework == "html"
