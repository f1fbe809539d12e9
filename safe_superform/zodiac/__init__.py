"""Zodiac Roles module integration.

- `Zodiac Roles Modifier <https://github.com/gnosisguild/zodiac-modifier-roles>`__
"""
