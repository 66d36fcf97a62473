import pytest

from analyze.parse_file import parse_source
from analyze.types import AccessibilityHints, UIElement
from detect.schema import ProbeElement
from skill.locators import (
    MATCH_THRESHOLD,
    ast_fallback_strategies,
    infer_role,
    reconcile,
    score_match,
    synthesize_strategies,
)

from conftest import read_fixture


def probe_el(**kw):
    kw.setdefault("tag", "input")
    kw.setdefault("selector", kw["tag"])
    return ProbeElement(**kw)


def test_no_probe_elements_still_yields_selectors():
    elements = parse_source(read_fixture("contact.html"), "contact.html").all_elements()
    results = reconcile(elements, [])
    assert all(r.probe_element is None for r in results)
    for el in elements:
        assert el.selector_fallback
    name = elements[1]
    assert [(s.strategy, s.value, s.score) for s in name.selector_fallback] == [
        ("css", "#name", 0.5),
        ("css", 'input[name="name"]', 0.4),
    ]
    # the submit button has nothing but its tag
    assert [(s.value, s.score) for s in elements[3].selector_fallback] == [("button", 0.1)]


def test_score_signals():
    el = UIElement(tag="input", id="email", name="email", label="Email", input_type="email")
    assert score_match(el, probe_el(id="email")) == pytest.approx(0.5)
    assert score_match(el, probe_el(name="email")) == pytest.approx(0.4)
    assert score_match(el, probe_el(accessible_name="email")) == pytest.approx(0.4)
    assert score_match(el, probe_el(accessible_name="Email address")) == pytest.approx(0.2)
    assert score_match(el, probe_el(role="textbox")) == pytest.approx(0.2)
    full = probe_el(id="email", name="email", accessible_name="Email", role="textbox")
    assert score_match(el, full) == 1.0


def test_hook_attributes_score():
    el = UIElement(tag="button", attributes={"data-mcp": "save", "data-testid": "save-btn"})
    pe = probe_el(tag="button", attributes={"data-mcp": "save"})
    assert score_match(el, pe) == pytest.approx(0.8)
    pe = probe_el(tag="button", attributes={"data-testid": "save-btn"})
    assert score_match(el, pe) == pytest.approx(0.6)


def test_explicit_role_overrides_inferred():
    el = UIElement(tag="button", accessibility=AccessibilityHints(role="tab"))
    assert score_match(el, probe_el(tag="button", role="tab")) == pytest.approx(0.2)
    assert score_match(el, probe_el(tag="button", role="button")) == 0.0


def test_weak_match_falls_back_to_static():
    el = UIElement(tag="input", name="q", input_type="text")
    # role alone (0.2) stays under the threshold
    (r,) = reconcile([el], [probe_el(role="textbox", selector="#search")])
    assert r.score <= MATCH_THRESHOLD
    assert r.probe_element is None
    assert el.selector_fallback[0].value == 'input[name="q"]'


def test_strong_match_synthesizes_sorted_strategies():
    el = UIElement(tag="input", name="email", label="Email", input_type="email")
    pe = probe_el(name="email", accessible_name="Email", role="textbox",
                  selector='[data-testid="email"]', attributes={"data-testid": "email"})
    (r,) = reconcile([el], [pe])
    assert r.probe_element is pe
    assert r.score == pytest.approx(1.0)
    assert [(s.strategy, s.score) for s in el.selector_fallback] == [
        ("test-id", 0.9),
        ("label", 0.8),
        ("role", 0.6),
        ("css", 0.5),
    ]
    assert el.selector_fallback[2].value == "textbox:Email"


def test_css_strategy_score_has_a_floor():
    pe = probe_el(selector="#x")
    (css,) = synthesize_strategies(pe, 0.31)
    assert css.score == pytest.approx(0.2)
    (css,) = synthesize_strategies(pe, 0.9)
    assert css.score == pytest.approx(0.45)


def test_test_hook_leads_static_fallback():
    el = UIElement(tag="input", id="a:b", attributes={"data-cy": "field"})
    values = [s.value for s in ast_fallback_strategies(el)]
    assert values == ['[data-cy="field"]', '[id="a:b"]']


def test_infer_role():
    assert infer_role("input", "checkbox") == "checkbox"
    assert infer_role("input") == "textbox"
    assert infer_role("input", "submit") == "button"
    assert infer_role("select") == "combobox"
