"""
Plugin packages loaded at startup.
"""
