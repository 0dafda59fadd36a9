"""Shared utilities for Locus core."""
