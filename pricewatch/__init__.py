"""
Competitor pricing-page monitoring pipeline.
"""
