"""Response models"""
