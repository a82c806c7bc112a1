"""
Blind Alarm Dashboard - application package
"""
