import shutil
import sys

import pytest
from playwright.sync_api import Error as PlaywrightError

from analyze.errors import NO_INSTRUMENTABLE_ELEMENTS, UnsupportedFileType
from detect import probe_playwright
from detect.errors import NAV_TIMEOUT, ProbeFailed
from detect.schema import ProbeElement, ProbeResult
import skill.instrument as instrument_mod
from skill.cache import HandlerCache
from skill.config import parse_config
from skill.instrument import (
    OUTCOME_ERROR,
    OUTCOME_OK,
    instrument_file,
    instrument_files,
    instrument_source,
    output_path,
    write_handlers,
)
from skill.llm_client import NoneBackend

from conftest import fixture_path, read_fixture


def run(name, **kw):
    kw.setdefault("config", parse_config(None))
    return instrument_source(read_fixture(name), name, **kw)


def test_contact_form():
    result = run("contact.html")
    assert result.outcome == OUTCOME_OK
    (p,) = result.proposals
    assert p.risk == "caution"
    assert len(p.input_schema["properties"]) == 2
    assert p.input_schema["required"] == ["name", "email"]
    assert all(v["type"] == "string" for v in p.input_schema["properties"].values())


def test_save_and_delete():
    result = run("AccountSettings.tsx")
    save, delete = result.proposals
    assert (save.risk, save.selected) == ("caution", True)
    assert (delete.risk, delete.selected) == ("destructive", False)


def test_search_is_safe():
    (p,) = run("SearchPage.tsx").proposals
    assert p.risk == "safe"


def test_display_only_component():
    result = run("Dashboard.tsx")
    assert result.outcome == NO_INSTRUMENTABLE_ELEMENTS
    assert result.proposals == []
    assert result.ok
    assert "Dashboard.tsx" in result.message


def test_vue_components():
    (p,) = run("Subscribe.vue").proposals
    assert p.name == "subscribe_subscribe"
    assert p.risk == "caution"
    assert p.input_schema["properties"]["plan"]["enum"] == ["free", "pro"]
    (p,) = run("ProfileEditor.vue").proposals
    assert (p.name, p.risk) == ("rename_profile_editor", "safe")


def test_output_is_deterministic():
    a = run("AccountSettings.tsx").to_dict()
    b = run("AccountSettings.tsx").to_dict()
    assert a == b


def test_destructive_exclusion_from_config():
    cfg = parse_config({"classification": {"destructive": "exclude"}})
    result = run("AccountSettings.tsx", config=cfg)
    assert [p.name for p in result.proposals] == ["save_changes_account_settings"]


def _live_contact(url, **kwargs):
    return ProbeResult(url=url, timestamp=0, elements=[
        ProbeElement(tag="input", id="name", name="name", input_type="text",
                     accessible_name="Your name", role="textbox", selector="#name"),
        ProbeElement(tag="input", id="email", name="email", input_type="email",
                     accessible_name="Email", role="textbox", selector="#email"),
        ProbeElement(tag="button", input_type="submit", accessible_name="Send Message",
                     role="button", selector="button"),
    ])


def test_probe_makes_tools_stable():
    result = run("contact.html", probe_url="http://localhost:3000", prober=_live_contact)
    (p,) = result.proposals
    assert result.probe is not None
    assert p.is_stable is True
    assert p.selected
    trigger = p.source_mapping.trigger_element
    assert trigger.selector_fallback[0].strategy == "label"


def test_probe_failure_degrades_to_static_selectors():
    def failing(url, **kwargs):
        raise ProbeFailed(NAV_TIMEOUT, "navigate", "navigation timed out after 10ms", url)

    result = run("contact.html", probe_url="http://localhost:3000", prober=failing)
    assert result.outcome == OUTCOME_OK
    assert "NAV_TIMEOUT" in result.probe_error
    (p,) = result.proposals
    assert p.is_stable is False
    assert not p.selected
    assert p.stability_reason == 'Field "Your name" top selector score 0.50 is below 0.6'
    for el in p.source_mapping.input_elements:
        assert el.selector_fallback


def test_browser_session_failure_keeps_static_results(monkeypatch):
    class ClosedPlaywright:
        def __enter__(self):
            raise PlaywrightError("Browser has been closed")

        def __exit__(self, *exc):
            return False

    monkeypatch.setattr(probe_playwright, "sync_playwright", ClosedPlaywright)
    result = run("contact.html", probe_url="http://localhost:1")
    assert result.outcome == OUTCOME_OK
    assert "SESSION_ERROR" in result.probe_error
    (p,) = result.proposals
    assert p.is_stable is False


def test_probe_options_are_forwarded():
    seen = {}

    def prober(url, **kwargs):
        seen.update(kwargs)
        return ProbeResult(url=url, timestamp=0)

    run("contact.html", probe_url="http://localhost:3000", prober=prober,
        probe_options={"timeout_ms": 500, "setup_script": "openModal()"})
    assert seen["timeout_ms"] == 500
    assert seen["setup_script"] == "openModal()"


def test_batch_reports_per_file_failures(tmp_path, no_config):
    broken = tmp_path / "Broken.vue"
    broken.write_text("<div>nothing</div>", encoding="utf-8")
    paths = [fixture_path("contact.html"), str(broken), str(tmp_path / "Missing.tsx")]
    ok, bad, missing = instrument_files(paths, config=parse_config(None))
    assert ok.outcome == OUTCOME_OK
    assert (bad.outcome, bad.error.code) == (OUTCOME_ERROR, "PARSE_FAILED")
    assert (missing.outcome, missing.error.code) == (OUTCOME_ERROR, "FILE_NOT_FOUND")
    assert not bad.ok
    assert bad.to_dict()["error"]["code"] == "PARSE_FAILED"


def test_unsupported_extension_fails_before_any_work():
    with pytest.raises(UnsupportedFileType):
        instrument_files([fixture_path("contact.html"), "styles.css"])


def test_instrument_file_reads_nearby_config(tmp_path):
    shutil.copy(fixture_path("AccountSettings.tsx"), tmp_path / "AccountSettings.tsx")
    (tmp_path / ".afcrc.json").write_text('{"classification": {"exclude": ["delete_*"]}}', encoding="utf-8")
    result = instrument_file(str(tmp_path / "AccountSettings.tsx"))
    assert [p.name for p in result.proposals] == ["save_changes_account_settings"]


def test_write_handlers(tmp_path):
    src = tmp_path / "contact.html"
    shutil.copy(fixture_path("contact.html"), src)
    cfg = parse_config(None)
    result = instrument_file(str(src), config=cfg)
    out = write_handlers(result, cfg, backend=NoneBackend(), cache=HandlerCache())
    assert out == output_path(str(src), cfg) == str(tmp_path / "contact.mcp.js")
    text = (tmp_path / "contact.mcp.js").read_text(encoding="utf-8")
    assert "send_message_contact" in text
    assert "__afcSetValue" in text


def test_write_handlers_skips_unselected(tmp_path):
    src = tmp_path / "Danger.tsx"
    src.write_text(
        "export function Danger() { return <button onClick={() => fetch('/x', { method: 'DELETE' })}>Delete</button>; }",
        encoding="utf-8",
    )
    cfg = parse_config(None)
    result = instrument_file(str(src), config=cfg)
    assert result.proposals[0].risk == "destructive"
    assert write_handlers(result, cfg, backend=NoneBackend(), cache=HandlerCache()) is None
    out = write_handlers(result, cfg, backend=NoneBackend(), cache=HandlerCache(), include_unselected=True)
    assert out.endswith("Danger.mcp.js")


class RecordingBackend:
    name = "recording"

    def __init__(self):
        self.temperatures = []

    def generate(self, messages, *, temperature=0.1, max_tokens=None):
        self.temperatures.append(temperature)
        return "return { success: true, message: 'ok' };"


def test_write_handlers_uses_configured_temperature(tmp_path):
    src = tmp_path / "contact.html"
    shutil.copy(fixture_path("contact.html"), src)
    cfg = parse_config({"llm": {"temperature": 0.4}})
    result = instrument_file(str(src), config=cfg)
    backend = RecordingBackend()
    write_handlers(result, cfg, backend=backend, cache=HandlerCache())
    assert backend.temperatures == [0.4]


def test_cli_takes_llm_settings_from_discovered_config(tmp_path, monkeypatch):
    shutil.copy(fixture_path("contact.html"), tmp_path / "contact.html")
    (tmp_path / ".afcrc.json").write_text('{"llm": {"backend": "none", "model": "gpt-test"}}', encoding="utf-8")
    seen = []

    def fake_detect(name=None, model=None, *, verbose=False):
        seen.append((name, model))
        return NoneBackend()

    monkeypatch.setattr("skill.cache._default_cache", HandlerCache())
    monkeypatch.setattr(instrument_mod, "detect_backend", fake_detect)
    monkeypatch.setattr(sys, "argv", ["afc-instrument", str(tmp_path / "contact.html"), "--write"])
    assert instrument_mod._cli() == 0
    assert seen == [("none", "gpt-test")]
    assert (tmp_path / "contact.mcp.js").exists()
