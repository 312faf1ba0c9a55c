"""
Utilities Module
================

Helper functions and utility classes.
"""

from worksuite.utils.helpers import to_date_key, utc_now

__all__ = ["to_date_key", "utc_now"]
