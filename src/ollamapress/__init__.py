"""
OllamaPress

Authenticated REST gateway in front of an Ollama server, with a registry of
extension services contributing their own endpoints.
"""

__version__ = "0.2.0"
