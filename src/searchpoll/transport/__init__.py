"""Poll transport layer — Connectors for the search backend.

Built-in transports:
  - http: the JSON poll API over httpx

Implement ``PollTransport`` to connect another backend.
"""
