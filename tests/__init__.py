"""Test suite for the health data anonymization engine."""
