"""Analyze package initializer.

Static analysis of UI source files (markup / JSX / Vue SFC) into one
structural model. Entry point: `analyze.parse_file.parse_file`.
"""
