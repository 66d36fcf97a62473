"""
Tool proposal builder (deterministic, no LLM).

Pipeline per component:
  1) group elements into tool candidates
       - form path: one candidate per (form, submit handler) binding (component-wide for a
         submit handler no form binds), or one per <form> when there are no submit handlers,
         plus an implicit grouping for form-free inputs + a form-free button
       - action path: every button not claimed as a form trigger
  2) classify risk (skill.risk), layer config overrides (skill.config), drop `excluded`
  3) name / describe / derive input schema (skill.args_schema)
  4) stable id = sha256 over the semantic surface only (no classes, no positions)
  5) optional stability gate over the reconciled selector lists (skill.locators)

Notes:
  - Output order follows component order, then candidate order; no wall-clock fields.
  - `source_mapping` is for code generation only and never serialized for agents.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from analyze.types import ComponentAnalysis, ComponentInfo, EventHandler, UIElement, prune_none
from analyze.utils import to_snake_case

from .args_schema import build_input_schema, field_key
from .config import InstrumentConfig, apply_overrides
from .risk import DEFAULT_RULES, classify_risk


FILLABLE_TAGS = ("input", "textarea", "select")
SKIPPED_INPUT_TYPES = ("password", "file", "hidden")
STABILITY_THRESHOLD = 0.6
ID_HEX_LEN = 12

_HANDLER_PREFIX_RE = re.compile(r"^(?:handle|on)(?=[A-Z_])")


# ----------------------------- data -----------------------------


@dataclass
class ToolCandidate:
    type: str  # form | action
    component_name: str
    trigger: Optional[UIElement] = None
    inputs: List[UIElement] = field(default_factory=list)
    handler: Optional[EventHandler] = None


@dataclass
class SourceMapping:
    component_name: str
    trigger_element: Optional[UIElement] = None
    input_elements: List[UIElement] = field(default_factory=list)
    handler: Optional[EventHandler] = None


@dataclass
class ToolProposal:
    index: int
    id: str
    name: str
    description: str
    risk: str
    input_schema: Dict[str, Any]
    source_mapping: SourceMapping
    selected: bool = True
    risk_reason: Optional[str] = None
    is_stable: Optional[bool] = None
    stability_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return prune_none({
            "index": self.index,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "risk": self.risk,
            "risk_reason": self.risk_reason,
            "is_stable": self.is_stable,
            "stability_reason": self.stability_reason,
            "selected": self.selected,
            "input_schema": self.input_schema,
        })

    def to_agent_tool(self) -> Dict[str, Any]:
        """The agent-facing tool definition (name + description + JSON schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


# ----------------------------- grouping -----------------------------


def is_fillable(el: UIElement) -> bool:
    return el.tag in FILLABLE_TAGS and (el.input_type or "") not in SKIPPED_INPUT_TYPES


def _is_submit_button(el: UIElement) -> bool:
    return el.tag == "button" and (
        el.input_type == "submit" or (el.attributes.get("type") or "").lower() == "submit"
    )


def pick_trigger(scope: List[UIElement]) -> Optional[UIElement]:
    buttons = [e for e in scope if e.tag == "button"]
    for b in buttons:
        if _is_submit_button(b):
            return b
    return buttons[0] if buttons else None


def _form_scope(elements: List[UIElement], form: UIElement) -> List[UIElement]:
    """Elements nested (at any depth) under `form`."""
    parent_of = {e.form_key: e.parent_form_id for e in elements if e.tag == "form" and e.form_key}
    key = form.form_key
    out: List[UIElement] = []
    for e in elements:
        cur = e.parent_form_id
        seen: Set[str] = set()
        while cur is not None and cur not in seen:
            if cur == key:
                out.append(e)
                break
            seen.add(cur)
            cur = parent_of.get(cur)
    return out


def _click_handler(btn: UIElement, handlers: List[EventHandler], bound: Set[str]) -> Optional[EventHandler]:
    by_name = {h.name: h for h in handlers}
    name = btn.handlers.get("click")
    if name:
        return by_name.get(name)
    if btn.id:
        for h in handlers:
            if h.event == "click" and h.element_id == btn.id:
                return h
    for h in handlers:
        if h.event == "click" and h.element_tag == "button" and h.name not in bound:
            return h
    return None


def group_candidates(comp: ComponentInfo) -> List[ToolCandidate]:
    elements = comp.elements
    handlers = comp.handlers
    forms = [e for e in elements if e.tag == "form"]
    bound = {name for e in elements for name in e.handlers.values()}
    claimed: Set[int] = set()
    out: List[ToolCandidate] = []

    def _add_form(scope: List[UIElement], handler: Optional[EventHandler]) -> None:
        trigger = pick_trigger(scope)
        if trigger is not None:
            claimed.add(id(trigger))
            if handler is None:
                handler = _click_handler(trigger, handlers, bound)
        out.append(ToolCandidate(
            type="form",
            component_name=comp.name,
            trigger=trigger,
            inputs=[e for e in scope if is_fillable(e)],
            handler=handler,
        ))

    submit_handlers = [h for h in handlers if h.event == "submit"]
    if submit_handlers:
        for h in submit_handlers:
            bound_forms = [f for f in forms if f.handlers.get("submit") == h.name]
            if not bound_forms:
                _add_form(elements, h)
            for form in bound_forms:
                _add_form(_form_scope(elements, form), h)
    else:
        for form in forms:
            scope = _form_scope(elements, form)
            if any(is_fillable(e) for e in scope):
                _add_form(scope, None)
        free = [e for e in elements if e.parent_form_id is None and e.tag != "form"]
        if any(is_fillable(e) for e in free) and any(e.tag == "button" for e in free):
            _add_form(free, None)

    for el in elements:
        if el.tag != "button" or id(el) in claimed:
            continue
        out.append(ToolCandidate(
            type="action",
            component_name=comp.name,
            trigger=el,
            inputs=[],
            handler=_click_handler(el, handlers, bound),
        ))
    return out


# ----------------------------- naming -----------------------------


def _handler_verb(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    stripped = _HANDLER_PREFIX_RE.sub("", name)
    return stripped or name


def tool_name(c: ToolCandidate) -> str:
    slug = to_snake_case(c.component_name) or "component"
    if c.type == "form":
        label = (c.trigger.label if c.trigger else None) or _handler_verb(c.handler.name if c.handler else None)
        verb = to_snake_case(label)
        return f"{verb}_{slug}" if verb else f"submit_{slug}"
    for raw in (
        c.trigger.label if c.trigger else None,
        c.trigger.id if c.trigger else None,
        _handler_verb(c.handler.name if c.handler else None),
    ):
        name = to_snake_case(raw)
        if name:
            return name
    return f"action_in_{slug}"


def describe(c: ToolCandidate) -> str:
    label = c.trigger.label if c.trigger else None
    if c.type == "form":
        fields = [e.label or e.name or e.id or e.tag for e in c.inputs][:3]
        if label and fields:
            return f"{label} the form with: {', '.join(fields)}"
        if label:
            return f"{label} the {c.component_name} form"
        return f"Fill and submit the {c.component_name} form"
    if label:
        return f"Trigger: {label}"
    return f"Perform action in {c.component_name}"


def stable_tool_id(c: ToolCandidate) -> str:
    """Identity over semantic intent only: names, labels, types. Never classes or positions.

    Candidates with the same semantic surface (two bare "Refresh" buttons) share an id;
    `name` is the unique key within one proposal list.
    """
    parts: List[str] = [c.component_name, c.type]
    t = c.trigger
    parts.extend([t.tag if t else "", (t.label or "") if t else "", (t.name or "") if t else ""])
    for el in c.inputs:
        parts.append(field_key(el) or "")
        parts.append(el.label or el.aria_label or "")
        parts.append(el.input_type or el.tag)
    canonical = "|".join(p.lower() for p in parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:ID_HEX_LEN]


def _element_ref(el: UIElement) -> str:
    return el.label or el.name or el.id or el.tag


def assess_stability(c: ToolCandidate, threshold: float = STABILITY_THRESHOLD) -> Tuple[bool, Optional[str]]:
    elements = list(c.inputs) + ([c.trigger] if c.trigger is not None else [])
    for el in elements:
        kind = "Trigger" if el is c.trigger else "Field"
        top = el.top_selector_score()
        if top is None:
            return False, f'{kind} "{_element_ref(el)}" lacks a runtime selector entirely'
        if top < threshold:
            return False, f'{kind} "{_element_ref(el)}" top selector score {top:.2f} is below {threshold}'
    return True, None


def _unique_name(name: str, taken: Set[str]) -> str:
    if name not in taken:
        return name
    n = 2
    while f"{name}_{n}" in taken:
        n += 1
    return f"{name}_{n}"


# ----------------------------- entry -----------------------------


def build_proposals(
    analysis: ComponentAnalysis,
    *,
    config: Optional[InstrumentConfig] = None,
    assess_stability_gate: bool = False,
    verbose: bool = False,
) -> List[ToolProposal]:
    rules = config.risk_rules() if config is not None else DEFAULT_RULES
    proposals: List[ToolProposal] = []
    names: Set[str] = set()
    index = 1
    for comp in analysis.components:
        for c in group_candidates(comp):
            name = tool_name(c)
            risk = apply_overrides(classify_risk(c.trigger, c.handler, rules), name, config)
            if risk.risk == "excluded":
                if verbose:
                    print(f"[skill.build] drop {name}: {risk.reason}")
                continue
            name = _unique_name(name, names)
            names.add(name)

            stable: Optional[bool] = None
            stable_reason: Optional[str] = None
            if assess_stability_gate:
                stable, stable_reason = assess_stability(c)

            proposals.append(ToolProposal(
                index=index,
                id=stable_tool_id(c),
                name=name,
                description=describe(c),
                risk=risk.risk,
                risk_reason=risk.reason,
                is_stable=stable,
                stability_reason=stable_reason,
                selected=risk.risk != "destructive" and stable is not False,
                input_schema=build_input_schema(c.inputs),
                source_mapping=SourceMapping(
                    component_name=c.component_name,
                    trigger_element=c.trigger,
                    input_elements=list(c.inputs),
                    handler=c.handler,
                ),
            ))
            index += 1
    if verbose:
        print(f"[skill.build] proposals: {len(proposals)} (file={analysis.file_name})")
    return proposals
