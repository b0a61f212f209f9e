"""
Configuration package for the Calendar Intelligence engine
"""
