"""
Helpdesk - support ticket tracking on top of Supabase.
"""

__version__ = "0.1.0"
