"""
Feature modules
"""
