"""Keyring broker.

Brokers account management and signing-request approval between untrusted
callers and an external approval surface. The broker tracks accounts,
queues signing requests, validates approval payloads and notifies the host
of every lifecycle change. It never derives keys or signs anything.
"""

__version__ = "0.1.0"
