"""
Test suite for Study Query LLM.

This package contains all tests organized by component:
- test_providers/: Tests for LLM provider implementations
- test_services/: Tests for business logic services
"""

