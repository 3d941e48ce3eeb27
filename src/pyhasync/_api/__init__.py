"""Builders for outbound ``call_service`` requests."""
