"""notify/ -- Best-effort new-account notifications.

Layer rule: notify/ may import from auth/ (for the Account model) and core/.
Nothing in auth/ imports notify/ at runtime.
"""
