"""
Tests for the Data Anonymization Module.

This package contains tests for:
- Pseudonymization and generalization rules
- Privacy method pipeline and Laplace noise
- Utility scoring
- Orchestration, audit log and export
- The FastAPI surface
"""
