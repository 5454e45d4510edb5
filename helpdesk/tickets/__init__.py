"""
Ticket core: live projections, transitions, comments and submission.

Backend access is always injected; nothing here reaches for a global client.
"""
