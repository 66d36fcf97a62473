from analyze.types import ApiCall, EventHandler, UIElement
from skill.risk import DEFAULT_RULES, classify_risk


def button(label=None, **kw):
    return UIElement(tag="button", label=label, **kw)


def handler(name, body=None, methods=()):
    return EventHandler(name=name, event="click", body=body,
                        api_calls=[ApiCall(method=m, url="/api/x") for m in methods])


def test_destructive_keyword_wins_over_caution():
    r = classify_risk(button("Delete and Save"))
    assert r.risk == "destructive"
    assert r.keyword == "delete"
    assert r.reason == 'Contains destructive keyword: "delete"'


def test_navigation_beats_destructive():
    r = classify_risk(button("Delete"), handler("navigateAway"))
    assert r.risk == "excluded"
    assert r.category == "navigation"


def test_file_upload_marker_is_excluded():
    r = classify_risk(button("Pick", id="file-upload"))
    assert r.risk == "excluded"
    assert r.category == "file-upload"


def test_http_methods():
    assert classify_risk(button("Go"), handler("go", methods=["DELETE"])).risk == "destructive"
    r = classify_risk(button("Go"), handler("go", methods=["POST"]))
    assert r.risk == "caution"
    assert r.reason == "Handler makes POST API call"
    assert classify_risk(button("Go"), handler("go", methods=["GET"])).risk == "safe"


def test_no_handler_is_safe():
    r = classify_risk(button("Refresh"))
    assert r.risk == "safe"
    assert r.category == "default"
    assert classify_risk().risk == "safe"


def test_keywords_match_inside_handler_body():
    h = handler("go", body="api.update(record)")
    assert classify_risk(button("Go"), h).risk == "caution"


def test_extended_rules():
    rules = DEFAULT_RULES.extended(destructive=["Archive"], excluded=["print"])
    assert classify_risk(button("Archive"), rules=rules).risk == "destructive"
    assert classify_risk(button("Print"), rules=rules).risk == "excluded"
    # defaults untouched
    assert classify_risk(button("Archive")).risk == "safe"


def test_reset_handler_without_trigger_is_destructive():
    r = classify_risk(None, EventHandler(name="handleReset", event="click"))
    assert r.risk == "destructive"
