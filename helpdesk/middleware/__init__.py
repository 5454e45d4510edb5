"""
Request middleware for the helpdesk API.
"""
