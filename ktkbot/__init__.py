"""
ktkbot - push notifications for new events on the KTK tennis listing.
"""

__version__ = "0.3.0"
