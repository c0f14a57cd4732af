"""Shared helpers for the handover service."""
