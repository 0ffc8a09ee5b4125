"""Application assembly helpers"""
