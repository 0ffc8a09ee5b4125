"""
OllamaPress API Module

FastAPI application proxying the Ollama REST API under /ollama/v1 and
dispatching extension endpoints under /ollama/v1/extensions.

Architecture:
- Session bearer tokens and trusted-caller strategies
- Per-identity rate limiting backed by Redis or memory
- Registry-driven extension routes
"""
