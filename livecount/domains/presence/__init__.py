"""
Presence domain: sliding-window active-visitor counting
"""
