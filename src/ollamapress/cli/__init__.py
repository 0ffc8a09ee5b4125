"""
OllamaPress CLI Module
Command-line interface components and utilities
"""
