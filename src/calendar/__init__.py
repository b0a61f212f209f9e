"""
Calendar data sources consumed by the analytics components
"""
