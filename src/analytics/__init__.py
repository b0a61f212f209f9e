"""
Analytics components: pattern learning, meeting scoring, conflict
resolution and focus-time optimization
"""
