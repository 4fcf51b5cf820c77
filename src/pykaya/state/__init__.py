"""Session state layer.

Holds the observable connection status and pairing code snapshot, and
the policy deciding how the session recovers from a disconnect.
"""
