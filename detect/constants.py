"""
detect.constants
探针默认参数。
"""

DEFAULT_TIMEOUT_MS = 10000
# 首次渲染后、以及执行预置脚本后的固定等待
SETTLE_MS = 500
NAV_WAIT_UNTIL = "load"

CANDIDATE_SELECTOR = (
    'input, button, select, textarea, form, '
    '[role="button"], [role="textbox"], [role="checkbox"]'
)
