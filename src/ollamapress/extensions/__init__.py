"""Bundled extension services"""
