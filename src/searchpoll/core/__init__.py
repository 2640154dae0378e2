"""Polling engine core — session state, scheduling, merging and filters."""
