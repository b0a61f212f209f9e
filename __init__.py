"""
Calendar Intelligence - meeting pattern learning and scheduling analytics

This package learns from a user's calendar history and:
- Scores proposed meeting times against learned acceptance patterns
- Detects hard and soft scheduling conflicts and proposes alternatives
- Recommends and protects weekly focus-time blocks
- Proposes schedule adaptations and shorter meeting durations
"""

__version__ = "1.0.0"
__author__ = "Calendar Intelligence Team"
