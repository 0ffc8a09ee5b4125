"""Authentication, trust and access control"""
