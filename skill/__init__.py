"""Tool proposal package.

Turns a `ComponentAnalysis` into risk-classified, schema-described tool proposals
(`skill.build`), reconciles them with runtime selectors (`skill.locators`) and
generates handler code (`skill.codegen`). `skill.instrument` runs the whole pipeline.
"""
