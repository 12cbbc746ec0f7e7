"""
LLM provider adapters and the registry that maps model identifiers to them.
"""
