import pytest

from analyze.errors import ParseFailed
from analyze.vue_parser import component_name, extract_props, parse_vue, split_blocks

from conftest import read_fixture


def test_script_setup_component():
    analysis = parse_vue(read_fixture("Subscribe.vue"), "Subscribe.vue")
    assert analysis.framework == "vue"
    comp = analysis.components[0]
    assert comp.name == "Subscribe"
    assert comp.type == "form"

    form, email, plan, button = comp.elements
    assert form.tag == "form"
    assert form.handlers == {"submit": "subscribe"}
    assert email.label == "Email address"
    assert email.is_required
    assert email.state_binding.variable == "email"
    assert plan.tag == "select"
    assert plan.options == ["free", "pro"]
    assert plan.state_binding.variable == "plan"
    assert button.label == "Subscribe"

    handler = comp.handlers[0]
    assert handler.name == "subscribe"
    assert handler.event == "submit"
    assert handler.is_async
    assert [c.method for c in handler.api_calls] == ["POST"]


def test_refs_and_define_props():
    comp = parse_vue(read_fixture("Subscribe.vue"), "Subscribe.vue").components[0]
    states = {s.name: s for s in comp.state_variables}
    assert states["email"].kind == "ref"
    assert states["plan"].initial_value == "'free'"

    source = comp.props[0]
    assert source.name == "source"
    assert source.type == "string"
    assert source.default_value == "'footer'"
    assert source.required is False


def test_options_api_component():
    comp = parse_vue(read_fixture("ProfileEditor.vue"), "profile-editor.vue").components[0]
    # the `name` option wins over the file name
    assert comp.name == "ProfileEditor"
    states = {s.name: s for s in comp.state_variables}
    assert states["nickname"].type == "string"
    assert states["attempts"].type == "number"

    nickname = next(e for e in comp.elements if e.tag == "input")
    assert nickname.label == "Nickname"
    assert comp.handlers[0].name == "rename"
    assert comp.handlers[0].event == "click"
    assert comp.handlers[0].body is not None


def test_interpolations_are_not_labels():
    src = "<template><button @click='go'>{{ count }} Go</button></template>"
    button = parse_vue(src, "Go.vue").components[0].elements[0]
    assert button.label == "Go"


def test_missing_blocks_fail():
    with pytest.raises(ParseFailed):
        parse_vue("<div>no blocks</div>", "Broken.vue")


def test_split_blocks_and_helpers():
    template, scripts = split_blocks("<template><p/></template><script>const a = 1</script>")
    assert template == "<p/>"
    assert scripts == ["const a = 1"]
    assert component_name("export default { name: 'Thing' }") == "Thing"
    props = extract_props("defineProps({ size: Number, label: { type: String, required: true } })")
    assert [(p.name, p.type, p.required) for p in props] == [("size", "number", False), ("label", "string", True)]


def test_component_kit_buttons_and_options():
    src = """<template>
  <el-form @submit.prevent="save">
    <el-select v-model="plan" placeholder="Plan">
      <el-option label="Free" value="free" />
      <el-option label="Pro" value="pro" />
    </el-select>
    <el-button type="primary" native-type="submit">Save</el-button>
    <el-button type="danger">Reset</el-button>
  </el-form>
</template>

<script setup>
import { ref } from 'vue'
const plan = ref('free')
function save() {}
</script>
"""
    comp = parse_vue(src, "Plan.vue").components[0]
    form, plan, save, reset = comp.elements
    assert form.tag == "form"
    assert plan.tag == "select"
    assert plan.options == ["free", "pro"]
    assert (save.label, save.input_type) == ("Save", "submit")
    assert (reset.label, reset.input_type) == ("Reset", None)
