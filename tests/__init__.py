"""
sigcond Test Suite

Test Organization:
- tests/unit/: Isolated kernel, schema and stage tests
- tests/integration/: Full pipeline and DataFrame adapter tests
"""

__version__ = "1.0.0"
