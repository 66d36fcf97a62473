from analyze.parse_file import parse_source
from analyze.types import SelectorStrategy, UIElement
from skill.build import ToolCandidate, assess_stability, build_proposals, group_candidates

from conftest import read_fixture


def proposals_for(name, file_name=None, **kw):
    analysis = parse_source(read_fixture(name), file_name or name)
    return build_proposals(analysis, **kw)


def test_html_form_proposal():
    (p,) = proposals_for("contact.html")
    assert p.index == 1
    assert p.name == "send_message_contact"
    assert p.risk == "caution"
    assert p.selected
    assert p.description == "Send Message the form with: Your name, Email"
    assert p.input_schema == {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Your name"},
            "email": {"type": "string", "description": "Email"},
        },
        "required": ["name", "email"],
    }
    assert len(p.id) == 12


def test_id_ignores_styling_and_layout():
    (a,) = proposals_for("contact.html")
    (b,) = proposals_for("contact_restyled.html", file_name="contact.html")
    assert a.id == b.id
    assert a.input_schema == b.input_schema


def test_id_tracks_semantic_changes():
    (base,) = proposals_for("contact.html")
    renamed = read_fixture("contact.html").replace('name="email"', 'name="reply_to"')
    (p,) = build_proposals(parse_source(renamed, "contact.html"))
    assert p.id != base.id

    retyped = read_fixture("contact.html").replace('type="email"', 'type="text"')
    (p,) = build_proposals(parse_source(retyped, "contact.html"))
    assert p.id != base.id


def test_react_form_and_destructive_action():
    save, delete = proposals_for("AccountSettings.tsx")
    assert save.name == "save_changes_account_settings"
    assert save.risk == "caution"
    assert save.risk_reason == 'Contains mutation keyword: "change"'
    assert save.input_schema["properties"]["display_name"]["description"] == "Display name"
    assert save.input_schema["required"] == ["email"]
    assert save.source_mapping.handler.name == "handleSave"

    assert delete.name == "delete_account"
    assert delete.risk == "destructive"
    assert not delete.selected
    assert delete.input_schema == {"type": "object", "properties": {}, "required": []}


def test_select_becomes_enum():
    (p,) = proposals_for("SearchPage.tsx")
    assert p.name == "search_search_page"
    assert p.risk == "safe"
    props = p.input_schema["properties"]
    assert list(props) == ["query", "category"]
    assert props["query"]["description"] == "Search products..."
    assert props["category"]["enum"] == ["all", "electronics", "clothing"]
    assert props["category"]["description"] == "select field"


def test_formless_inputs_group_with_first_button():
    add, clear = proposals_for("todo.html")
    assert add.name == "add_todo"
    assert add.risk == "caution"
    assert list(add.input_schema["properties"]) == ["task"]
    assert clear.name == "clear_completed"
    assert clear.risk == "destructive"
    assert clear.source_mapping.handler.name == "clearCompleted"


def test_duplicate_names_get_suffixes():
    analysis = parse_source("<button>Refresh</button><button>Refresh</button>", "x.html")
    proposals = build_proposals(analysis)
    assert [p.name for p in proposals] == ["refresh", "refresh_2"]
    # identical semantic surface, identical identity
    assert proposals[0].id == proposals[1].id


def test_shared_submit_handler_scopes_each_form():
    src = """
<form id="a" onsubmit="go()"><input name="x"><button type="submit">Send</button></form>
<form id="b" onsubmit="go()"><input name="y"><button type="submit">Send</button></form>
<script>function go() { fetch('/api/go', { method: 'POST' }); }</script>
"""
    proposals = build_proposals(parse_source(src, "pair.html"))
    assert [(p.name, list(p.input_schema["properties"])) for p in proposals] == [
        ("send_pair", ["x"]),
        ("send_pair_2", ["y"]),
    ]
    assert [p.source_mapping.handler.name for p in proposals] == ["go", "go"]
    assert proposals[0].id != proposals[1].id


def test_to_dict_is_agent_safe():
    (p,) = proposals_for("contact.html")
    d = p.to_dict()
    assert "source_mapping" not in d
    assert "is_stable" not in d
    assert p.to_agent_tool()["inputSchema"] is p.input_schema


def _candidate(field_score, trigger_score):
    field = UIElement(tag="input", name="q",
                      selector_fallback=[SelectorStrategy("css", 'input[name="q"]', field_score)])
    trigger = UIElement(tag="button", label="Go",
                        selector_fallback=[SelectorStrategy("css", "button", trigger_score)])
    return ToolCandidate(type="form", component_name="Search", trigger=trigger, inputs=[field])


def test_stability_threshold_is_inclusive():
    assert assess_stability(_candidate(0.6, 0.9)) == (True, None)
    stable, reason = assess_stability(_candidate(0.59, 0.9))
    assert not stable
    assert reason == 'Field "q" top selector score 0.59 is below 0.6'


def test_missing_runtime_selector_is_unstable():
    c = _candidate(0.9, 0.9)
    c.trigger.selector_fallback = None
    stable, reason = assess_stability(c)
    assert not stable
    assert "lacks a runtime selector entirely" in reason


def test_stability_gate_deselects():
    (p,) = proposals_for("contact.html", assess_stability_gate=True)
    assert p.is_stable is False
    assert not p.selected


def test_group_candidates_action_path():
    comp = parse_source(read_fixture("AccountSettings.tsx"), "AccountSettings.tsx").components[0]
    kinds = [(c.type, c.trigger.label) for c in group_candidates(comp)]
    assert kinds == [("form", "Save Changes"), ("action", "Delete Account")]
