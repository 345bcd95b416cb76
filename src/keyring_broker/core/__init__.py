"""Keyring core: account store, request queue, approval coordinator and facade."""
