"""
analyze.constants
常量定义：交互标签白名单、第三方组件→原生标签映射、接口调用模式等。

这些表是纯数据，扩展时只需改这里，不涉及解析逻辑。
"""

import re

INTERACTIVE_TAGS = frozenset({"input", "button", "select", "textarea", "form"})

# 第三方 UI 组件名 → (原生标签, 默认 input type)
KNOWN_INPUT_COMPONENTS = {
    # MUI
    "TextField": ("input", None),
    "Select": ("select", None),
    "Checkbox": ("input", "checkbox"),
    "Switch": ("input", "checkbox"),
    "Radio": ("input", "radio"),
    "Slider": ("input", "range"),
    # Chakra / Radix / shadcn
    "Input": ("input", None),
    "Textarea": ("textarea", None),
    "TextArea": ("textarea", None),
    "NumberInput": ("input", "number"),
    # Ant Design
    "InputNumber": ("input", "number"),
    "DatePicker": ("input", "date"),
    "Form": ("form", None),
    # generic
    "Button": ("button", None),
    "IconButton": ("button", None),
    # Vue UI kits (模板中按小写匹配)
    "el-input": ("input", None),
    "el-input-number": ("input", "number"),
    "el-select": ("select", None),
    "el-checkbox": ("input", "checkbox"),
    "el-switch": ("input", "checkbox"),
    "el-button": ("button", None),
    "el-form": ("form", None),
    "v-text-field": ("input", None),
    "v-textarea": ("textarea", None),
    "v-select": ("select", None),
    "v-checkbox": ("input", "checkbox"),
    "v-switch": ("input", "checkbox"),
    "v-btn": ("button", None),
    "v-form": ("form", None),
    "a-input": ("input", None),
    "a-select": ("select", None),
    "a-checkbox": ("input", "checkbox"),
    "a-button": ("button", None),
    "a-form": ("form", None),
    "n-input": ("input", None),
    "n-button": ("button", None),
    "q-input": ("input", None),
    "q-select": ("select", None),
    "q-btn": ("button", None),
}

# 大小写不敏感的方言（HTML / Vue 模板，标签名被解析器转成小写）：
# "TextField" -> "textfield"，"ElInput" -> "elinput"，"el-input" 原样
KNOWN_INPUT_COMPONENTS_LOWER = {}
for _name, _mapping in KNOWN_INPUT_COMPONENTS.items():
    KNOWN_INPUT_COMPONENTS_LOWER[_name.lower()] = _mapping
    KNOWN_INPUT_COMPONENTS_LOWER.setdefault(_name.lower().replace("-", ""), _mapping)
del _name, _mapping

# 视为按钮的 input 类型
BUTTON_INPUT_TYPES = frozenset({"submit", "button", "reset", "image"})

# 组件库按钮的原生 type 属性（type 本身常被用作主题：type="primary"）
NATIVE_BUTTON_TYPE_ATTRS = ("native-type", "nativeType", "htmlType", "htmltype", "html-type")

# 下拉选项标签（原生 option + 组件库选项）
OPTION_TAGS = frozenset({
    "option", "el-option", "eloption", "a-select-option", "aselectoption",
    "Option", "Select.Option", "MenuItem", "ElOption", "ASelectOption",
})

# 不纳入 schema 的输入类型
NON_FILLABLE_INPUT_TYPES = frozenset({"password", "file", "hidden"}) | BUTTON_INPUT_TYPES

HTML_VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

# 显式标签属性的优先级（placeholder → aria-label → label → title）
EXPLICIT_LABEL_ATTRS = ("placeholder", "aria-label", "label", "title")

# 测试/工具钩子属性
TOOL_HOOK_ATTRS = ("data-mcp", "data-tool")
TEST_HOOK_ATTRS = ("data-testid", "data-test-id", "data-test", "data-cy", "data-qa")

SUPPORTED_EXTENSIONS = {
    ".html": "html",
    ".htm": "html",
    ".tsx": "react",
    ".jsx": "react",
    ".vue": "vue",
}

# ----------------------------- API call patterns -----------------------------

FETCH_LIKE_CALLEES = ("fetch", "$fetch", "ofetch")
VERB_CALL_OBJECTS = ("axios", "api", "http", "client", "apiClient", "$http", "ky", "request")
HTTP_VERBS = ("get", "post", "put", "patch", "delete")

# fetch 风格：fetch(url, { method: 'POST' })，method 缺省为 GET
FETCH_CALL_RE = re.compile(
    r"(?<![\w$.])(?:" + "|".join(re.escape(c) for c in FETCH_LIKE_CALLEES) + r")\s*\(\s*"
    r"""(?P<q>['"`])(?P<url>[^'"`]*)(?P=q)"""
)

# 动词方法风格：axios.post(url) / api.delete(url) / http.put(url)
VERB_CALL_RE = re.compile(
    r"(?<![\w$.])(?:" + "|".join(re.escape(o) for o in VERB_CALL_OBJECTS) + r")\."
    r"(?P<method>" + "|".join(HTTP_VERBS) + r")\s*(?:<[^>()]*>)?\s*\(\s*"
    r"""(?P<q>['"`])(?P<url>[^'"`]*)(?P=q)""",
    re.IGNORECASE,
)

METHOD_OPTION_RE = re.compile(r"""method\s*:\s*(['"`])(?P<method>[A-Za-z]+)\1""")

# 表单库 hook → 库名
FORM_LIBRARY_HOOKS = {
    "useForm": "react-hook-form",
    "useFormik": "formik",
}

# {...register("email", { required: true })} / {...formik.getFieldProps("email")}
REGISTER_SPREAD_RE = re.compile(
    r"""^(?P<obj>[\w$]+\.)?(?P<fn>register|getFieldProps)\(\s*(['"`])(?P<field>[\w.\[\]-]+)\3(?P<rest>.*)$""",
    re.DOTALL,
)
