"""Pydantic models for servekit configuration."""

from servekit.models.config import ServerConfig, TlsOptions

__all__ = ["ServerConfig", "TlsOptions"]
