"""CLI utilities"""
