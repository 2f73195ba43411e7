"""
Test Fixtures

Synthetic order-confirmation emails shared by the unit and integration tests.
"""
