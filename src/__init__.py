"""
Calendar Intelligence engine sources
"""
