"""
Monthly Shift Roster

A desktop helper for a five-person shop that fills a monthly calendar with
shift codes, keeping buddy pairs on opposite shifts and balancing each
pair's A/B history, with holiday and shop-closed handling.
"""

__version__ = "1.0.0"
__author__ = "Shift Roster Team"
