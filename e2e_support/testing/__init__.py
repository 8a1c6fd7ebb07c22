"""Pytest integration for the e2e provisioning flow."""
