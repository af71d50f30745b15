"""Test suite for the vectorsearch library.

The suite is organized into:
- tests/test_*.py: unit tests for each engine module, with MagicMock clients
- tests/test_scenarios.py: end-to-end searches against the in-memory Qdrant
  client, marked with @pytest.mark.integration
- tests/utils: tests for configuration, logging and sparse vector helpers
"""
