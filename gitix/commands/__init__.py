"""
CLI command groups for gitix.
"""
