"""Tests for utility modules: configuration, logging and sparse vectors."""
