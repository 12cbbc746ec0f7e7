"""
Google Sheets integration

A1-notation helpers, spreadsheet reads and the edit manager that applies
planned spreadsheet edits.
"""
