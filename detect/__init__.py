"""Runtime probe package.

`detect.probe_playwright.probe(url)` renders the target page in a headless
browser and returns the live interactive elements (`detect.schema.ProbeResult`).
"""
