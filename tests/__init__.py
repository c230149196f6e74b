"""
Clinic Availability Test Suite
"""
