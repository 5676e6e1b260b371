"""Upstream data collectors."""
