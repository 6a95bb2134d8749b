# tests/property/__init__.py
"""Property-based tests for cpt.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- test_age_properties: age expressions and cutoff arithmetic
- test_audit_codec_properties: audit message transit encoding
- test_filters_properties: filter validation rejects unsafe input
"""
