"""Rivet template translation, URL decoding and HTTP form request parsing."""

__version__ = "0.1.0"
__all__ = ["parser", "cli", "multipart", "urlcodec", "request"]