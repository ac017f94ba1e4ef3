"""
Award Deadlines Board - data pipeline for a static awards listing site.

This package provides functionality to:
- Normalize spreadsheet, CSV and Excel award submissions into canonical records
- Detect duplicate submissions and maintain the awards.json record store
- Filter and sort the listing view and export deadlines to calendars
- Validate the persisted collection as a CI gate
- Turn new spreadsheet rows into review pull requests on GitHub
"""

__version__ = "2.0.0"
__author__ = "Award Deadlines Board Team"
