"""
Google Docs integration

Paragraph reads, Docs request builders and the document edit manager.
"""
