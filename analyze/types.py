"""
analyze.types

Structural model shared by every source dialect:
UIElement / EventHandler / StateVariable / ComponentInfo / ComponentAnalysis.

Notes:
  - `UIElement.tag` is always one of ELEMENT_TAGS; attribute keys/values are strings.
  - `selector_fallback` is the only field written after a parse pass (by skill.locators).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


ELEMENT_TAGS = ("input", "button", "select", "textarea", "form")
EVENT_KINDS = ("submit", "click", "change")
COMPONENT_TYPES = ("form", "action", "display", "mixed")
STATE_KINDS = ("state", "ref", "reducer", "form_library", "other")
FRAMEWORKS = ("html", "react", "vue")


@dataclass
class StateBinding:
    variable: str
    setter: Optional[str] = None
    access_path: Optional[str] = None


@dataclass
class AccessibilityHints:
    aria_label: Optional[str] = None
    aria_described_by: Optional[str] = None
    role: Optional[str] = None


@dataclass
class SelectorStrategy:
    """One way to locate an element at call time.

    strategy: tool-hook | test-id | label | role | css
    """

    strategy: str
    value: str
    score: float


@dataclass
class UIElement:
    tag: str
    id: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None
    input_type: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    state_binding: Optional[StateBinding] = None
    validation: List[str] = field(default_factory=list)
    accessibility: Optional[AccessibilityHints] = None
    parent_form_id: Optional[str] = None
    # only set on tag == "form": the identifier children record as parent_form_id
    form_key: Optional[str] = None
    # event kind -> handler name bound on this element
    handlers: Dict[str, str] = field(default_factory=dict)
    options: List[str] = field(default_factory=list)
    selector_fallback: Optional[List[SelectorStrategy]] = None

    def __post_init__(self) -> None:
        if self.tag not in ELEMENT_TAGS:
            raise ValueError(f"unsupported element tag: {self.tag!r}")
        self.attributes = {str(k): _attr_str(v) for k, v in (self.attributes or {}).items()}

    @property
    def aria_label(self) -> Optional[str]:
        return self.accessibility.aria_label if self.accessibility else None

    @property
    def is_required(self) -> bool:
        return "required" in (self.validation or [])

    def top_selector_score(self) -> Optional[float]:
        if not self.selector_fallback:
            return None
        return max(s.score for s in self.selector_fallback)


@dataclass
class ApiCall:
    method: str
    url: str


@dataclass
class EventHandler:
    name: str
    event: str
    element_tag: Optional[str] = None
    element_id: Optional[str] = None
    body: Optional[str] = None
    is_async: bool = False
    api_calls: List[ApiCall] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.event not in EVENT_KINDS:
            raise ValueError(f"unsupported event kind: {self.event!r}")


@dataclass
class StateVariable:
    name: str
    setter: Optional[str] = None
    initial_value: Optional[str] = None
    type: str = "string"
    kind: str = "state"


@dataclass
class PropDefinition:
    name: str
    type: Optional[str] = None
    required: bool = True
    default_value: Optional[str] = None


@dataclass
class ComponentInfo:
    name: str
    type: str
    elements: List[UIElement] = field(default_factory=list)
    handlers: List[EventHandler] = field(default_factory=list)
    state_variables: List[StateVariable] = field(default_factory=list)
    props: List[PropDefinition] = field(default_factory=list)
    form_library: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.elements and not self.handlers


@dataclass
class ComponentAnalysis:
    file_name: str
    framework: str
    components: List[ComponentInfo] = field(default_factory=list)

    def all_elements(self) -> List[UIElement]:
        out: List[UIElement] = []
        for comp in self.components:
            out.extend(comp.elements)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return prune_none(asdict(self))


def _attr_str(v: Any) -> str:
    if v is None:
        return "true"
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def prune_none(obj: Any) -> Any:
    """Drop None values (recursively) so serialized output stays compact."""
    if isinstance(obj, dict):
        return {k: prune_none(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [prune_none(v) for v in obj]
    return obj
