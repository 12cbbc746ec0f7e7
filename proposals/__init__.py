"""
Edit-proposal pipeline: turns raw LLM replies into validated, corrected,
locatable edit instructions and plans them as Google Docs / Sheets requests.
"""
